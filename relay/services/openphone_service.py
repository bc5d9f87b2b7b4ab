import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from relay.config import Settings
from relay.errors import MissingFieldError
from relay.services.http_client import UpstreamResponse, fetch_json
from relay.utils.helpers import as_list

logger = logging.getLogger(__name__)


def filter_one_to_one(conversations: Any) -> Tuple[List[dict], int]:
    """
    Keep only one-to-one conversations (exactly one participant).

    Returns:
        tuple: (kept conversations, number of discarded group conversations)
    """
    if not isinstance(conversations, list):
        return [], 0
    kept = [
        c for c in conversations
        if isinstance(c, dict) and isinstance(c.get("participants"), list) and len(c["participants"]) == 1
    ]
    return kept, len(conversations) - len(kept)


class OpenPhoneService:
    """
    Proxy for the OpenPhone REST API.
    Translates this app's query parameters into OpenPhone's pagination/filter
    conventions and passes status codes and bodies back unchanged.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self.settings = settings
        self.base_url = settings.openphone_api.rstrip("/")
        self.http = http_client

        if not settings.openphone_api_key:
            logger.warning("OPENPHONE_API_KEY not found in env")

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        # OpenPhone expects the raw key, no "Bearer" prefix
        headers = {
            "Authorization": self.settings.openphone_api_key or "",
            "Accept": "application/json",
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def list_conversations(self, page_token: Optional[str] = None,
                                 max_results: Union[int, str] = 40) -> UpstreamResponse:
        """
        Lists conversations, keeps only one-to-one ones and attaches each
        conversation's most recent message as `lastMessage`.
        """
        params = {"maxResults": str(max_results)}
        if page_token:
            params["pageToken"] = page_token

        logger.info("Fetching conversations...")
        upstream = await fetch_json(
            self.http, "GET", f"{self.base_url}/conversations",
            headers=self._headers(), params=params,
        )
        logger.info(f"Conversations response status: {upstream.status_code}")

        body = upstream.body
        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            logger.warning("No conversation data found or data is not an array")
            return upstream

        kept, discarded = filter_one_to_one(body["data"])
        body["data"] = kept
        logger.info(f"Discarded {discarded} group conversations. One-to-one remaining: {len(kept)}")

        await asyncio.gather(*(self._attach_last_message(c) for c in kept))
        logger.info("Finished fetching last messages")
        return upstream

    async def _attach_last_message(self, conversation: dict):
        conv_id = conversation.get("id")
        try:
            params = [
                ("phoneNumberId", conversation.get("phoneNumberId") or ""),
                ("maxResults", "1"),
            ]
            params.extend(("participants", p) for p in conversation["participants"])

            upstream = await fetch_json(
                self.http, "GET", f"{self.base_url}/messages",
                headers=self._headers(), params=params,
            )
            if not upstream.ok:
                logger.warning(f"Failed to fetch messages for conversation {conv_id}: {upstream.status_code}")
                return

            messages = upstream.body.get("data") if isinstance(upstream.body, dict) else None
            if messages:
                conversation["lastMessage"] = messages[0]
            else:
                logger.info(f"No messages found for conversation {conv_id}")
        except Exception as e:
            logger.error(f"Error fetching last message for conversation {conv_id}: {e}")

    async def list_messages(self, phone_number_id: Optional[str],
                            participants: Union[None, str, List[str]],
                            page_token: Optional[str] = None,
                            limit: Union[int, str] = 50) -> UpstreamResponse:
        """Lists messages between one of our numbers and the given participants."""
        participants = as_list(participants)
        if not phone_number_id or not participants:
            raise MissingFieldError("phoneNumberId and participants are required")

        params = [("phoneNumberId", phone_number_id), ("maxResults", str(limit))]
        if page_token:
            params.append(("pageToken", page_token))
        # OpenPhone takes participants as repeated query params
        params.extend(("participants", p) for p in participants)

        return await fetch_json(
            self.http, "GET", f"{self.base_url}/messages",
            headers=self._headers(), params=params,
        )

    def build_message_payload(self, text: str, to: Union[str, List[str]],
                              from_number: Optional[str] = None,
                              user_id: Optional[str] = None) -> dict:
        """Outbound message body. Sender and userId fall back to process configuration."""
        sender = from_number or self.settings.openphone_from
        if not sender:
            raise MissingFieldError("from is missing. Configure OPENPHONE_FROM or send it in the body.")

        payload = {
            "content": text,
            "from": sender,
            "to": as_list(to),
        }
        user_id = user_id or self.settings.openphone_user_id
        if user_id:
            payload["userId"] = user_id
        return payload

    async def send_message(self, text: str, to: Union[str, List[str]],
                           from_number: Optional[str] = None,
                           user_id: Optional[str] = None) -> UpstreamResponse:
        """Sends a message via OpenPhone. Status and body come back verbatim."""
        if not text or not to:
            raise MissingFieldError("text and to are required")

        payload = self.build_message_payload(text, to, from_number, user_id)

        logger.info(f"Sending message to {payload['to']} from {payload['from']}...")
        upstream = await fetch_json(
            self.http, "POST", f"{self.base_url}/messages",
            headers=self._headers(json_body=True), json=payload,
        )
        if upstream.ok:
            logger.info(f"Message sent: {upstream.status_code}")
        else:
            logger.error(f"OpenPhone rejected message: {upstream.status_code} {upstream.body}")
        return upstream
