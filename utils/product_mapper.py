# QIQ Product Normalization

import math
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from config import MEDIA_CONFIG
from models import ProductRecord

IDENTIFIER_KEYS = ("objectID", "object_id", "id")


def to_number(value: Any) -> float:
    """数値へ変換（変換不可・非有限値は 0）"""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        number = value if isinstance(value, (int, float)) else float(str(value).strip())
        # float 範囲外の int は OverflowError
        if not math.isfinite(number):
            return 0
    except (ValueError, OverflowError):
        return 0
    return number


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def catalog_url(object_id: str) -> str:
    return f"{MEDIA_CONFIG['catalog_url']}{quote(object_id, safe='')}"


def approved_media_url(value: Any, prefixes: Optional[Iterable[str]] = None) -> str:
    """許可されたCDNパスのURLのみ採用"""
    url = _to_text(value)
    if not url:
        return ""
    allowed = MEDIA_CONFIG["approved_prefixes"] if prefixes is None else prefixes
    for prefix in allowed:
        if url.startswith(prefix):
            return url
    return ""


def extract_identifier(document: Dict[str, Any]) -> str:
    for key in IDENTIFIER_KEYS:
        value = _to_text(document.get(key))
        if value:
            return value
    return ""


def map_record(document: Dict[str, Any], object_id: Optional[str] = None) -> ProductRecord:
    """Typesense ドキュメントを正規化レコードに変換"""
    oid = object_id if object_id is not None else extract_identifier(document)
    return ProductRecord(
        objectID=oid,
        name=_to_text(document.get("name")),
        brand=_to_text(document.get("brand")),
        item_type=_to_text(document.get("item_type")),
        category=_to_text(document.get("category")),
        price=max(to_number(document.get("price")), 0),
        list_price=to_number(document.get("list_price")),
        availability=to_number(document.get("availability")),
        image=approved_media_url(document.get("image")),
        spec_sheet=approved_media_url(document.get("spec_sheet")),
        url=catalog_url(oid),
    )


def placeholder_record(object_id: str) -> ProductRecord:
    """未解決IDのプレースホルダ"""
    return ProductRecord(objectID=object_id, url=catalog_url(object_id))


def is_valid_record(record: ProductRecord) -> bool:
    return bool(record.objectID and record.name and record.category)
