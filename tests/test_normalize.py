"""Tests for response envelope normalization."""
import pytest

from core.normalize import NormalizationError, as_collection, as_resource, normalize_body


def test_bare_list_is_returned_unchanged():
    items = [{"id": "1"}, {"id": "2"}]
    assert normalize_body(items) is items
    assert normalize_body(normalize_body(items)) == items


def test_data_field_takes_precedence_over_other_lists():
    assert normalize_body({"data": [1, 2], "items": [3, 4]}) == [1, 2]
    assert normalize_body({"data": [1, 2], "credentials": [3, 4]}, "credentials") == [1, 2]


def test_named_resource_field_is_used_when_data_is_missing():
    body = {"nodeTypes": [{"name": "n8n-nodes-base.set"}], "count": 1}
    assert normalize_body(body, "nodeTypes") == [{"name": "n8n-nodes-base.set"}]


def test_named_field_is_ignored_without_resource_key():
    body = {"credentials": [{"id": "1"}]}
    assert normalize_body(body) == body


def test_non_list_data_field_falls_back_to_named_field():
    body = {"data": {"total": 3}, "credentials": [{"id": "1"}]}
    assert normalize_body(body, "credentials") == [{"id": "1"}]


def test_mapping_without_lists_is_a_single_resource():
    body = {"id": "42", "name": "Workflow"}
    assert normalize_body(body, "workflows") == body


@pytest.mark.parametrize("body", ["text", 7, None, True])
def test_scalars_are_rejected(body):
    with pytest.raises(NormalizationError):
        normalize_body(body)


def test_as_collection_rejects_single_object():
    with pytest.raises(NormalizationError):
        as_collection({"status": "ok"})


def test_as_resource_rejects_collection():
    with pytest.raises(NormalizationError):
        as_resource([{"id": "1"}])


def test_as_resource_treats_empty_body_as_empty_mapping():
    assert as_resource(None) == {}
    assert as_resource("") == {}


def test_as_resource_unwraps_lone_data_envelope():
    assert as_resource({"data": {"id": "w"}}) == {"id": "w"}


def test_as_resource_keeps_credential_data_field():
    credential = {"id": "c", "type": "slackApi", "data": {"accessToken": "x"}}
    assert as_resource(credential) == credential
