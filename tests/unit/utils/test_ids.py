from __future__ import annotations

from casedesk.utils.ids import is_new_entity, new_id, new_temp_id


def test_temp_ids_are_recognised_as_new():
    temp_id = new_temp_id()
    assert temp_id.startswith("tmp-")
    assert is_new_entity(temp_id) is True


def test_sentinels_and_blank_ids_are_new():
    for value in (None, "", "0", "new", "temp-sale-id"):
        assert is_new_entity(value) is True


def test_backend_ids_are_not_new():
    assert is_new_entity(new_id()) is False
    assert is_new_entity("c-100") is False
