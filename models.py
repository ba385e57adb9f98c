# QIQ MCP Data Models

import copy
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

JSONRPC_VERSION = "2.0"


class MCPRequest(BaseModel):
    jsonrpc: Any = JSONRPC_VERSION
    id: Any = None
    method: str
    params: Any = None


class RPCError(BaseModel):
    code: int
    message: str
    data: Any = None


class MCPResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: Any = None
    result: Any = None
    error: Optional[RPCError] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-RPC エンベロープ（result と error は排他）"""
        envelope: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            envelope["error"] = self.error.model_dump(exclude_none=True)
        else:
            envelope["result"] = self.result
        return envelope


class ToolDescription(BaseModel):
    name: str
    description: str
    inputSchema: Dict[str, Any]
    outputSchema: Dict[str, Any]


class ToolDefinition(BaseModel):
    """登録ツール定義（call は非同期関数）"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str = ""
    inputSchema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object"})
    outputSchema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object"})
    arguments_model: Optional[Type[BaseModel]] = None
    call: Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

    def describe(self) -> Dict[str, Any]:
        return ToolDescription(
            name=self.name,
            description=self.description,
            inputSchema=copy.deepcopy(self.inputSchema),
            outputSchema=copy.deepcopy(self.outputSchema),
        ).model_dump()


class ProductRecord(BaseModel):
    """QIQ 正規化商品レコード（全フィールド必須・null なし）"""

    objectID: str = ""
    name: str = ""
    brand: str = ""
    item_type: str = ""
    category: str = ""
    price: float = 0
    list_price: float = 0
    availability: float = 0
    image: str = ""
    spec_sheet: str = ""
    url: str = ""


class TypesenseSettings(BaseModel):
    host: str = ""
    protocol: Literal["http", "https"] = "https"
    port: Optional[int] = None
    api_key: str = ""
    collection: str = "quickitquote_products"
    query_by: List[str] = Field(default_factory=list)
    connection_timeout: float = 10

    @property
    def effective_port(self) -> int:
        if self.port:
            return self.port
        return 443 if self.protocol == "https" else 80

    @property
    def configured(self) -> bool:
        return bool(self.host and self.api_key)


# --- ツール引数モデル ---

class PingArguments(BaseModel):
    status: Optional[str] = None


_OBJECT_ID_ALIASES = ("objectID", "objectid", "ObjectID", "ObjectId")
_OBJECT_IDS_ALIASES = ("objectIDs", "objectIds", "objectids", "ObjectIDs")


class TypesenseSearchArguments(BaseModel):
    objectID: Optional[str] = None
    objectIDs: List[str] = Field(default_factory=list)
    keywords: Optional[str] = None
    category: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def merge_identifier_aliases(cls, data: Any) -> Any:
        """大文字小文字違いのキーを受け付け、単一IDをリストに統合"""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        single = next((data.pop(k) for k in _OBJECT_ID_ALIASES if data.get(k) not in (None, "")), None)
        many = next((data.pop(k) for k in _OBJECT_IDS_ALIASES if data.get(k) not in (None, "")), None)
        for key in _OBJECT_ID_ALIASES + _OBJECT_IDS_ALIASES:
            data.pop(key, None)

        if isinstance(many, (str, int, float)):
            many = [many]
        ids = [str(v) for v in (many or []) if v is not None]
        if single is not None:
            single = str(single)
            ids.append(single)
            data["objectID"] = single
        data["objectIDs"] = ids
        return data


class QiqScoringArguments(BaseModel):
    products: List[Dict[str, Any]] = Field(default_factory=list)
    context: Any = None


class TypesenseConfigPatch(BaseModel):
    host: Optional[str] = None
    protocol: Optional[Literal["http", "https"]] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    apiKey: Optional[str] = None
    collection: Optional[str] = None
    queryBy: Optional[List[str]] = None

    @field_validator("protocol", mode="before")
    @classmethod
    def lower_protocol(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("queryBy", mode="before")
    @classmethod
    def split_query_by(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        if isinstance(value, list):
            return [str(v).strip() for v in value if str(v).strip()]
        return value

    def to_settings_update(self) -> Dict[str, Any]:
        """指定されたフィールドのみ TypesenseSettings のキーに変換"""
        mapping = {
            "host": "host",
            "protocol": "protocol",
            "port": "port",
            "apiKey": "api_key",
            "collection": "collection",
            "queryBy": "query_by",
        }
        supplied = self.model_dump(exclude_unset=True)
        update = {}
        for key, value in supplied.items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
            update[mapping[key]] = value
        return update


class TypesenseHealthArguments(BaseModel):
    pass
