import pytest

from erphub.errors import InvalidInputError
from erphub.services import proposals


ITEMS = [{"description": "Design", "quantity": 1, "unit_price": 400}]


def test_new_version_keeps_number_and_resets_status(db, staff):
    original = proposals.create_proposal(db, staff.company_id, staff.id, "Client", "Office fit-out", ITEMS)
    proposals.update_proposal(db, original.id, status="sent")

    v2 = proposals.create_new_version(db, original.id, title="Office fit-out (revised)")

    assert v2.proposal_number == original.proposal_number
    assert v2.version == 2
    assert v2.status == "draft"
    assert v2.title == "Office fit-out (revised)"
    assert v2.total == 400
    assert [i.description for i in v2.items] == ["Design"]


def test_listing_returns_latest_version_only(db, staff):
    original = proposals.create_proposal(db, staff.company_id, staff.id, "Client", "Fit-out", ITEMS)
    proposals.create_new_version(db, original.id)
    v3 = proposals.create_new_version(db, original.id, items=[{"description": "Build", "quantity": 2, "unit_price": 100}])

    listed = proposals.get_proposals(db, company_id=staff.company_id)
    assert [p.id for p in listed] == [v3.id]
    assert v3.amount == 200
    assert [p.version for p in proposals.get_proposal_versions(db, original.proposal_number)] == [3, 2, 1]


def test_invalid_status(db, staff):
    p = proposals.create_proposal(db, staff.company_id, staff.id, "Client", "Fit-out", ITEMS)
    with pytest.raises(InvalidInputError):
        proposals.update_proposal(db, p.id, status="archived")


def test_title_required(db, staff):
    with pytest.raises(InvalidInputError):
        proposals.create_proposal(db, staff.company_id, staff.id, "Client", "  ", ITEMS)
