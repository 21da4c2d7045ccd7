"""
String-keyed storage slots for the voice script.
Uses Vercel KV when configured so the script survives serverless restarts,
otherwise a small JSON file on local disk.
"""
import os
import json
import httpx
import logging
from typing import Dict, Optional
from .settings import KV_REST_API_URL, KV_REST_API_TOKEN, STORE_PATH

logger = logging.getLogger(__name__)

class KVStorage:
    def __init__(self, rest_url: str = None, rest_token: str = None, path: str = None,
                 transport: httpx.AsyncBaseTransport = None):
        self.kv_rest_api_url = KV_REST_API_URL if rest_url is None else rest_url
        self.kv_rest_api_token = KV_REST_API_TOKEN if rest_token is None else rest_token
        self.path = path or STORE_PATH
        self._transport = transport

        if not self.kv_rest_api_url or not self.kv_rest_api_token:
            logger.info(f"KV storage not configured - using local file {self.path}")
            self.enabled = False
        else:
            self.enabled = True
            logger.info("KV storage enabled")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.kv_rest_api_token}",
            "Content-Type": "application/json"
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=10, transport=self._transport)

    async def set(self, key: str, value: str) -> bool:
        """Store a string value under key"""
        if not self.enabled:
            return self._file_set(key, value)

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.kv_rest_api_url}/set",
                    headers=self._headers(),
                    json=[key, value]
                )
                response.raise_for_status()
                logger.info(f"Stored {key} in KV")
                return True
        except Exception as e:
            logger.error(f"Failed to store {key} in KV: {e}")
            return False

    async def get(self, key: str) -> Optional[str]:
        """Retrieve the string stored under key, or None"""
        if not self.enabled:
            return self._file_get(key)

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.kv_rest_api_url}/get",
                    headers=self._headers(),
                    json=[key]
                )
                response.raise_for_status()
                data = response.json()

                if data.get("result") is not None:
                    logger.info(f"Retrieved {key} from KV")
                    return data["result"]
                else:
                    logger.info(f"{key} not found in KV")
                    return None
        except Exception as e:
            logger.error(f"Failed to retrieve {key} from KV: {e}")
            return None

    def _file_read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _file_set(self, key: str, value: str) -> bool:
        try:
            data = self._file_read()
        except (OSError, ValueError) as e:
            logger.warning(f"Store file {self.path} unreadable, starting fresh: {e}")
            data = {}
        data[key] = value
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            tmp_path = self.path + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
            return True
        except OSError as e:
            logger.error(f"Failed to store {key} in {self.path}: {e}")
            return False

    def _file_get(self, key: str) -> Optional[str]:
        try:
            value = self._file_read().get(key)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {key} from {self.path}: {e}")
            return None
        return value if isinstance(value, str) else None
