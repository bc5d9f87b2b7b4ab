"""
Offline conversation reports used by the scripts in scripts/.
Synchronous on purpose: these run from a terminal, one request at a time.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ReportError(Exception):
    """OpenPhone answered a report request with an error status."""


class OpenPhoneReportClient:
    """Blocking OpenPhone client for the reporting scripts."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Authorization": api_key, "Accept": "application/json"})

    def fetch_conversations_page(self, page_token: Optional[str] = None, max_results: int = 50) -> dict:
        params = {"maxResults": str(max_results)}
        if page_token:
            params["pageToken"] = page_token
        response = self.session.get(f"{self.base_url}/conversations", params=params, timeout=self.timeout)
        data = response.json()
        if not response.ok:
            raise ReportError(f"Error {response.status_code}: {data}")
        return data

    def fetch_all_conversations(self, limit_pages: int = 10, page_size: int = 50) -> List[dict]:
        """Follow nextPageToken for at most limit_pages pages."""
        token = None
        conversations = []
        for _ in range(limit_pages):
            data = self.fetch_conversations_page(token, page_size)
            page = data.get("data") if isinstance(data.get("data"), list) else []
            conversations.extend(page)
            token = data.get("nextPageToken")
            if not token:
                break
        return conversations

    def fetch_recent_messages(self, phone_number_id: str, participants: List[str],
                              max_results: int = 10) -> List[dict]:
        params = [("phoneNumberId", phone_number_id), ("maxResults", str(max_results))]
        params.extend(("participants", p) for p in participants)
        response = self.session.get(f"{self.base_url}/messages", params=params, timeout=self.timeout)
        data = response.json()
        if not response.ok:
            raise ReportError(f"Error messages {response.status_code}: {data}")
        return data.get("data") if isinstance(data.get("data"), list) else []


# --- CLASSIFICATION ---

def _participants(conversation: dict) -> list:
    participants = conversation.get("participants")
    return participants if isinstance(participants, list) else []


def classify_conversations(conversations: List[dict]) -> Dict[str, Any]:
    """Split into one-to-one vs group and with/without contacts; count participant value types."""
    with_contacts, without_contacts, groups, solo = [], [], [], []
    type_stats = {"stringParticipants": 0, "objectParticipants": 0, "mixedParticipants": 0}

    for c in conversations:
        participants = _participants(c)
        has_obj = any(isinstance(p, dict) for p in participants)
        has_str = any(isinstance(p, str) for p in participants)
        if has_obj and has_str:
            type_stats["mixedParticipants"] += 1
        elif has_obj:
            type_stats["objectParticipants"] += 1
        elif has_str:
            type_stats["stringParticipants"] += 1

        contacts = c.get("participantContacts")
        if isinstance(contacts, list) and contacts:
            with_contacts.append(c)
        else:
            without_contacts.append(c)

        if len(participants) > 1:
            groups.append(c)
        else:
            solo.append(c)

    return {
        "withContacts": with_contacts,
        "withoutContacts": without_contacts,
        "typeStats": type_stats,
        "groups": groups,
        "solo": solo,
    }


def pick_sample_fields(c: dict) -> dict:
    contacts = c.get("participantContacts")
    contact = contacts[0] if isinstance(contacts, list) and contacts else None
    return {
        "id": c.get("id"),
        "phoneNumberId": c.get("phoneNumberId"),
        "participants": c.get("participants"),
        "participantContacts": {
            key: contact.get(key)
            for key in ("displayName", "firstName", "lastName", "company", "role", "phoneNumbers")
        } if isinstance(contact, dict) else None,
        "createdAt": c.get("createdAt"),
        "updatedAt": c.get("updatedAt"),
        "lastActivityAt": c.get("lastActivityAt"),
    }


def summarize_keys(with_contacts: List[dict], without_contacts: List[dict]) -> Dict[str, List[str]]:
    """Which record keys appear only with contacts, only without, or in both."""
    keys_with = {k for c in with_contacts for k in c}
    keys_without = {k for c in without_contacts for k in c}
    return {
        "onlyInWith": sorted(keys_with - keys_without),
        "onlyInWithout": sorted(keys_without - keys_with),
        "commonKeys": sorted(keys_with & keys_without),
    }


def map_duplicates_by_number(conversations: List[dict]) -> Dict[str, Dict[str, Any]]:
    """Numbers that appear in more than one conversation, and per-number conversation counts."""
    by_number: Dict[str, List[str]] = {}
    for c in conversations:
        for p in _participants(c):
            if isinstance(p, str):
                by_number.setdefault(p, []).append(c.get("id"))
    return {
        "duplicates": {n: ids for n, ids in by_number.items() if len(ids) > 1},
        "counts": {n: len(ids) for n, ids in by_number.items()},
    }


def _short(c: dict) -> dict:
    return {"id": c.get("id"), "phoneNumberId": c.get("phoneNumberId"), "participants": c.get("participants")}


def counts_report(conversations: List[dict]) -> dict:
    classified = classify_conversations(conversations)
    return {
        "totalConversations": len(conversations),
        "groupsCount": len(classified["groups"]),
        "soloCount": len(classified["solo"]),
        "participantsTypes": classified["typeStats"],
        "examples": {
            "groups": [_short(c) for c in classified["groups"][:5]],
            "solo": [_short(c) for c in classified["solo"][:5]],
        },
    }


def full_report(conversations: List[dict]) -> dict:
    classified = classify_conversations(conversations)
    groups, solo = classified["groups"], classified["solo"]
    return {
        "stats": {
            "total": len(conversations),
            "withContacts": len(classified["withContacts"]),
            "withoutContacts": len(classified["withoutContacts"]),
            "groups": len(groups),
            "solo": len(solo),
            "typeStats": classified["typeStats"],
        },
        "keyDiffs": summarize_keys(classified["withContacts"], classified["withoutContacts"]),
        "distribution": {"participantsCount": {"one": len(solo), "moreThanOne": len(groups)}},
        "duplicatesByNumber": map_duplicates_by_number(conversations),
        "all": {"raw": conversations, "reduced": [pick_sample_fields(c) for c in conversations]},
        "groups": {"raw": groups, "reduced": [pick_sample_fields(c) for c in groups]},
        "solo": {"raw": solo, "reduced": [pick_sample_fields(c) for c in solo]},
    }


# --- NUMBER LOOKUP ---

def find_solo_by_number(conversations: List[dict], number: str) -> List[dict]:
    return [c for c in conversations if _participants(c) == [number]]


def find_groups_by_number(conversations: List[dict], number: str) -> List[dict]:
    return [c for c in conversations if len(_participants(c)) > 1 and number in _participants(c)]


def is_recent(date_str: Optional[str], hours: float, now: Optional[datetime] = None) -> bool:
    """True when an ISO-8601 timestamp is at most `hours` old."""
    if not date_str:
        return False
    try:
        date = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        return False
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (now - date).total_seconds() / 3600 <= hours


def check_number(client: OpenPhoneReportClient, number: str, limit_pages: int = 10,
                 page_size: int = 50, recent_hours: float = 168) -> dict:
    """
    Checks whether a one-to-one conversation with `number` exists and is recent.
    Falls back to probing /messages on every known phoneNumberId when none is listed.
    """
    conversations = client.fetch_all_conversations(limit_pages, page_size)
    logger.info(f"Conversations loaded: {len(conversations)}")

    solo = find_solo_by_number(conversations, number)
    groups = find_groups_by_number(conversations, number)
    logger.info(f"One-to-one found: {len(solo)} | groups found: {len(groups)}")

    checks = []
    for conv in solo:
        msgs = client.fetch_recent_messages(conv.get("phoneNumberId"), conv["participants"], 5)
        latest = msgs[0] if msgs else {}
        latest_time = (latest.get("createdAt") or conv.get("lastActivityAt")
                       or conv.get("updatedAt") or conv.get("createdAt"))
        checks.append({
            "source": "conversation",
            "conversationId": conv.get("id"),
            "phoneNumberId": conv.get("phoneNumberId"),
            "participants": conv.get("participants"),
            "lastActivityAt": conv.get("lastActivityAt"),
            "latestMessageAt": latest.get("createdAt"),
            "isRecent": is_recent(latest_time, recent_hours),
            "messagesSample": msgs[:3],
        })

    if not solo:
        logger.info("No one-to-one conversation listed. Probing /messages on known phoneNumberIds...")
        phone_number_ids = sorted({c.get("phoneNumberId") for c in conversations if c.get("phoneNumberId")})
        for pni in phone_number_ids:
            try:
                msgs = client.fetch_recent_messages(pni, [number], 5)
            except (ReportError, requests.RequestException) as e:
                logger.warning(f"Failed to query messages on {pni}: {e}")
                continue
            if msgs:
                checks.append({
                    "source": "messagesProbe",
                    "conversationId": None,
                    "phoneNumberId": pni,
                    "participants": [number],
                    "lastActivityAt": None,
                    "latestMessageAt": msgs[0].get("createdAt"),
                    "isRecent": is_recent(msgs[0].get("createdAt"), recent_hours),
                    "messagesSample": msgs[:3],
                })

    return {
        "number": number,
        "totals": {
            "conversationsLoaded": len(conversations),
            "soloFound": len(solo),
            "groupsFound": len(groups),
            "probesWithMessages": len([r for r in checks if r["source"] == "messagesProbe"]),
        },
        "soloConversations": [
            {"id": c.get("id"), "phoneNumberId": c.get("phoneNumberId"), "participants": c.get("participants"),
             "lastActivityAt": c.get("lastActivityAt"), "updatedAt": c.get("updatedAt")}
            for c in solo
        ],
        "groupConversations": [
            {"id": c.get("id"), "phoneNumberId": c.get("phoneNumberId"), "participants": c.get("participants"),
             "name": c.get("name"), "lastActivityAt": c.get("lastActivityAt")}
            for c in groups
        ],
        "recentWindowHours": recent_hours,
        "checks": checks,
    }
