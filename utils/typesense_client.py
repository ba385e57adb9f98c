# Typesense API Client

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from models import TypesenseSettings

logger = logging.getLogger(__name__)


class TypesenseError(Exception):
    """Typesense 呼び出し失敗（HTTPステータスがあれば保持）"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TypesenseClient:
    def __init__(self, settings: TypesenseSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.base_url = f"{settings.protocol}://{settings.host}:{settings.effective_port}"
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-TYPESENSE-API-KEY": settings.api_key,
            "Accept": "application/json",
        })

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.settings.connection_timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"[TypesenseClient] Request to {path} failed: {e}")
            raise TypesenseError(f"Typesense connection error: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            logger.warning(f"[TypesenseClient] {path} returned {response.status_code}: {detail}")
            raise TypesenseError(f"Typesense {response.status_code}: {detail}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise TypesenseError(f"Typesense returned invalid JSON: {e}", response.status_code) from e

    def search(self, collection: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """ドキュメント検索"""
        return self._get(f"/collections/{quote(collection, safe='')}/documents/search", params)

    def retrieve_collection(self, collection: str) -> Dict[str, Any]:
        """コレクションのスキーマ取得"""
        return self._get(f"/collections/{quote(collection, safe='')}")

    def close(self):
        self.session.close()
