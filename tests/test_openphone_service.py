import asyncio
from dataclasses import replace

import httpx
import pytest

from relay.errors import MissingFieldError
from relay.services.openphone_service import OpenPhoneService, filter_one_to_one
from tests.fakes import request_json

CONVERSATIONS = [
    {"id": "CN1", "phoneNumberId": "PN1", "participants": ["+15551111111"]},
    {"id": "CN2", "phoneNumberId": "PN1", "participants": ["+15552222222", "+15553333333"]},
    {"id": "CN3", "phoneNumberId": "PN2", "participants": ["+15554444444"]},
    {"id": "CN4", "phoneNumberId": "PN2", "participants": []},
]


def run(coro):
    return asyncio.run(coro)


def test_filter_one_to_one_counts_discarded():
    kept, discarded = filter_one_to_one(CONVERSATIONS)
    assert [c["id"] for c in kept] == ["CN1", "CN3"]
    assert discarded == len(CONVERSATIONS) - len(kept)


def test_filter_one_to_one_ignores_non_list():
    assert filter_one_to_one(None) == ([], 0)


def test_list_conversations_filters_and_attaches_last_message(settings, upstream):
    upstream.add("GET", "/v1/conversations", json_body={"data": [dict(c) for c in CONVERSATIONS],
                                                         "nextPageToken": "next"})

    def messages(request):
        participant = request.url.params.get_list("participants")[0]
        return httpx.Response(200, json={"data": [{"id": f"MSG-{participant}", "text": "hi"}]})

    upstream.add("GET", "/v1/messages", handler=messages)
    service = OpenPhoneService(settings, upstream.client())

    result = run(service.list_conversations(page_token="tok", max_results=10))

    assert result.status_code == 200
    assert [c["id"] for c in result.body["data"]] == ["CN1", "CN3"]
    assert result.body["data"][0]["lastMessage"] == {"id": "MSG-+15551111111", "text": "hi"}
    assert result.body["nextPageToken"] == "next"

    list_call = upstream.sent("GET", "/v1/conversations")[0]
    assert list_call.url.params["maxResults"] == "10"
    assert list_call.url.params["pageToken"] == "tok"
    assert list_call.headers["Authorization"] == "op-key"

    message_calls = upstream.sent("GET", "/v1/messages")
    assert len(message_calls) == 2
    assert all(c.url.params["maxResults"] == "1" for c in message_calls)


def test_list_conversations_survives_one_failed_message_fetch(settings, upstream):
    upstream.add("GET", "/v1/conversations", json_body={"data": [dict(c) for c in CONVERSATIONS]})

    def messages(request):
        phone_number_id = request.url.params["phoneNumberId"]
        if phone_number_id == "PN1":
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json={"data": [{"id": "MSG3"}]})

    upstream.add("GET", "/v1/messages", handler=messages)
    service = OpenPhoneService(settings, upstream.client())

    result = run(service.list_conversations())

    by_id = {c["id"]: c for c in result.body["data"]}
    assert "lastMessage" not in by_id["CN1"]
    assert by_id["CN3"]["lastMessage"] == {"id": "MSG3"}


def test_list_conversations_skips_message_on_error_status(settings, upstream):
    upstream.add("GET", "/v1/conversations", json_body={"data": [dict(CONVERSATIONS[0])]})
    upstream.add("GET", "/v1/messages", status=500, json_body={"message": "oops"})
    service = OpenPhoneService(settings, upstream.client())

    result = run(service.list_conversations())

    assert result.body["data"] == [CONVERSATIONS[0]]


def test_list_conversations_passes_upstream_error_through(settings, upstream):
    upstream.add("GET", "/v1/conversations", status=401, json_body={"message": "Unauthorized"})
    service = OpenPhoneService(settings, upstream.client())

    result = run(service.list_conversations())

    assert result.status_code == 401
    assert result.body == {"message": "Unauthorized"}
    assert upstream.sent("GET", "/v1/messages") == []


@pytest.mark.parametrize("phone_number_id,participants", [
    (None, ["+15551111111"]),
    ("PN1", None),
    ("PN1", []),
])
def test_list_messages_requires_fields(settings, upstream, phone_number_id, participants):
    service = OpenPhoneService(settings, upstream.client())
    with pytest.raises(MissingFieldError):
        run(service.list_messages(phone_number_id, participants))
    assert upstream.requests == []


def test_list_messages_repeats_participants(settings, upstream):
    upstream.add("GET", "/v1/messages", json_body={"data": []})
    service = OpenPhoneService(settings, upstream.client())

    run(service.list_messages("PN1", ["+15551111111", "+15552222222"], page_token="p2", limit=20))

    params = upstream.requests[0].url.params
    assert params.get_list("participants") == ["+15551111111", "+15552222222"]
    assert params["phoneNumberId"] == "PN1"
    assert params["maxResults"] == "20"
    assert params["pageToken"] == "p2"


def test_list_messages_accepts_single_participant_string(settings, upstream):
    upstream.add("GET", "/v1/messages", json_body={"data": []})
    service = OpenPhoneService(settings, upstream.client())

    run(service.list_messages("PN1", "+15551111111"))

    assert upstream.requests[0].url.params.get_list("participants") == ["+15551111111"]


def test_send_message_payload(settings, upstream):
    upstream.add("POST", "/v1/messages", status=202, json_body={"data": {"id": "MSG1"}})
    service = OpenPhoneService(replace(settings, openphone_user_id="US1"), upstream.client())

    result = run(service.send_message("hi", "+15551234567"))

    assert result.status_code == 202
    assert request_json(upstream.requests[0]) == {
        "content": "hi",
        "from": "+15550000000",
        "to": ["+15551234567"],
        "userId": "US1",
    }


def test_send_message_body_overrides_configuration(settings, upstream):
    upstream.add("POST", "/v1/messages", json_body={"data": {}})
    service = OpenPhoneService(replace(settings, openphone_user_id="US1"), upstream.client())

    run(service.send_message("hi", ["+15551234567"], from_number="+15559999999", user_id="US2"))

    payload = request_json(upstream.requests[0])
    assert payload["from"] == "+15559999999"
    assert payload["userId"] == "US2"


def test_send_message_without_sender(settings, upstream):
    service = OpenPhoneService(replace(settings, openphone_from=None), upstream.client())
    with pytest.raises(MissingFieldError):
        run(service.send_message("hi", "+15551234567"))
    assert upstream.requests == []


def test_send_message_omits_user_id_when_unset(settings, upstream):
    service = OpenPhoneService(settings, upstream.client())
    payload = service.build_message_payload("hi", "+15551234567")
    assert "userId" not in payload
