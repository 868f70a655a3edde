from datetime import datetime, timezone

import pytest
from bson import ObjectId

from app.models.contract import (
    AggregateCounts,
    Category,
    ContractRecord,
    DecoratedContract,
    Urgency,
    urgency_for,
)
from app.models.interaction import IDLE, EditDraft, Editing, QuickRenewalPreview, describe


@pytest.mark.parametrize("days, urgency", [
    (-365, Urgency.EXPIRED),
    (-1, Urgency.EXPIRED),
    (0, Urgency.CRITICAL),
    (2, Urgency.CRITICAL),
    (3, Urgency.WARNING),
    (5, Urgency.WARNING),
    (6, Urgency.NORMAL),
    (400, Urgency.NORMAL),
    (None, Urgency.UNKNOWN),
])
def test_urgency_boundaries(days, urgency):
    assert urgency_for(days) is urgency


def test_record_from_mongo_document():
    object_id = ObjectId()
    record = ContractRecord.from_document({
        "_id": object_id,
        "userId": "owner-1",
        "nome": "João Silva",
        "contacto": "912345678",
        "categoria": "Jardins",
        "dataExpiracao": datetime(2026, 11, 1),
        "createdAt": datetime(2026, 10, 1, tzinfo=timezone.utc),
    })
    assert record.id == str(object_id)
    assert record.owner_id == "owner-1"
    assert record.category is Category.GARDEN_SERVICE
    assert record.expires_at == datetime(2026, 11, 1, tzinfo=timezone.utc)


def test_record_tolerates_legacy_documents():
    """Unknown categories and malformed dates are read as missing"""
    record = ContractRecord.from_document({
        "id": "abc",
        "userId": "owner-1",
        "nome": "Ana",
        "categoria": "Outros",
        "dataExpiracao": "sem data",
    })
    assert record.category is None
    assert record.expires_at is None
    assert record.contact is None


@pytest.mark.parametrize("days, label", [
    (None, "Data inválida"),
    (-3, "Expirado"),
    (0, "Expira hoje"),
    (1, "1 dia restante"),
    (4, "4 dias restantes"),
])
def test_status_label(days, label):
    contract = DecoratedContract(id="1", owner_id="o", name="Ana", days_remaining=days)
    assert contract.status_label == label


def test_alert_identifier():
    contract = DecoratedContract(id="1", owner_id="o", name="Ana", contact="912345678", display_index=2)
    assert contract.alert_identifier == "#2 - Ana (912345678)"
    assert contract.model_copy(update={"contact": None}).alert_identifier == "#2 - Ana (-)"


def test_aggregate_total():
    assert AggregateCounts(pool=2, garden=3, expired=1).total == 5


def test_describe_states():
    draft = EditDraft(name="Ana", contact=None, expires_at="2026-11-01", category="Piscinas")
    editing = Editing("r1", "Ana", draft, current_category="Piscinas")
    assert describe(IDLE) == {"kind": "idle"}
    assert describe(editing)["draft"]["expires_at"] == "2026-11-01"

    preview = QuickRenewalPreview("r1", "Ana", 12, datetime(2027, 10, 19, tzinfo=timezone.utc), "+1 ano")
    data = describe(preview)
    assert data["kind"] == "quick_renewal_preview"
    assert data["label"] == "+1 ano"
