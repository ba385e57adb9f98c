# QIQ MCP - Product Scoring Tool

import logging
from typing import Any, Dict, List

from models import QiqScoringArguments, ToolDefinition
from utils.product_mapper import to_number

logger = logging.getLogger(__name__)


def score_products(products: List[Dict[str, Any]], context: Any = None) -> List[Dict[str, Any]]:
    """価格の逆数でスコア付けし降順に安定ソート（context は未使用）"""
    scored = []
    for product in products:
        item = dict(product)
        price = to_number(item.get("price"))
        item["price"] = price
        item["score"] = 1 / price if price > 0 else 0
        scored.append(item)
    return sorted(scored, key=lambda p: p["score"], reverse=True)


async def qiq_scoring(params: Dict[str, Any]) -> Dict[str, Any]:
    arguments = QiqScoringArguments.model_validate(params)
    products = score_products(arguments.products, arguments.context)
    logger.info(f"[qiq_scoring] Scored {len(products)} products")
    return {"products": products}


QIQ_SCORING_TOOL = ToolDefinition(
    name="qiq_scoring",
    description="Score products by inverse price (score = 1/price, 0 when price <= 0) and sort best first.",
    inputSchema={
        "type": "object",
        "properties": {
            "products": {"type": "array", "items": {"type": "object"}},
            "context": {},
        },
        "required": ["products"],
    },
    outputSchema={
        "type": "object",
        "properties": {
            "products": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"price": {"type": "number"}, "score": {"type": "number"}},
                    "required": ["price", "score"],
                },
            },
        },
        "required": ["products"],
    },
    arguments_model=QiqScoringArguments,
    call=qiq_scoring,
)
