"""
Simulated order-management backend.

Every handler draws from an injectable ``random.Random`` so runs can be
reproduced with a seed. Transient upstream faults are raised as
``TransientToolError``; business-rule rejections are returned as payloads
with ``success: false``. The transient draw always happens before the domain
draw.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
from dataclasses import dataclass
from datetime import date
import asyncio
import random

from support_agent.domain.exceptions import TransientToolError

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

TOKEN_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
ORDER_STATUSES = ("processing", "shipped", "delivered", "cancelled")
REFUND_STATUSES = ("completed", "in_progress", "failed")
RETURN_ADDRESS = "123 Return Center, Warehouse City, WC 12345"


@dataclass(frozen=True)
class FailureProfile:
    """Fixed failure probabilities for one tool"""
    transient: float = 0.0
    domain: float = 0.0


FAILURE_PROFILES: Dict[str, FailureProfile] = {
    "get_order_status": FailureProfile(transient=0.2),
    "process_refund": FailureProfile(transient=0.15, domain=0.1),
    "send_replacement": FailureProfile(domain=0.1),
    "cancel_order": FailureProfile(domain=0.2),
    "verify_refund": FailureProfile(),
    "process_return": FailureProfile(transient=0.15),
    "tier2_support_escalation": FailureProfile(domain=0.1),
}

PARTIAL_SHIPMENT_PROBABILITY = 0.3
ESCALATION_DELAY_RANGE = (2.0, 5.0)


class OrderBackend:
    """Mocked e-commerce backend with RNG-driven failures"""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.rng = rng or random.Random()
        self._sleep = sleep
        self.handlers: Dict[str, ToolHandler] = {
            "get_order_status": self.get_order_status,
            "process_refund": self.process_refund,
            "send_replacement": self.send_replacement,
            "cancel_order": self.cancel_order,
            "verify_refund": self.verify_refund,
            "process_return": self.process_return,
            "tier2_support_escalation": self.tier2_support_escalation,
        }

    def _token(self, prefix: str) -> str:
        return prefix + "".join(self.rng.choice(TOKEN_ALPHABET) for _ in range(9))

    def _amount(self, low: float, span: float) -> str:
        return f"${self.rng.random() * span + low:.2f}"

    def _transient(self, tool_name: str, message: str):
        if self.rng.random() < FAILURE_PROFILES[tool_name].transient:
            raise TransientToolError(message)

    def _domain_failure(self, tool_name: str) -> bool:
        return self.rng.random() < FAILURE_PROFILES[tool_name].domain

    async def get_order_status(self, args: Dict[str, Any]) -> Dict[str, Any]:
        self._transient("get_order_status", "API timeout - please retry")

        # Partial shipments split the order across three item states
        is_partial_shipment = self.rng.random() < PARTIAL_SHIPMENT_PROBABILITY
        status = self.rng.choice(ORDER_STATUSES)

        if is_partial_shipment:
            items = [
                {"itemId": "item1", "name": "Wireless Headphones", "status": "shipped"},
                {"itemId": "item2", "name": "Phone Case", "status": "processing"},
                {"itemId": "item3", "name": "Screen Protector", "status": "delivered"},
            ]
        else:
            items = [{"itemId": "item1", "name": "Wireless Headphones", "status": status}]

        shipped = status == "shipped"
        return {
            "orderId": args["orderId"],
            "status": status,
            "items": items,
            "trackingNumber": self._token("TRK") if shipped else None,
            "estimatedDelivery": "2-3 business days" if shipped else None,
        }

    async def process_refund(self, args: Dict[str, Any]) -> Dict[str, Any]:
        self._transient("process_refund", "Refund processing API error - please retry")

        if self._domain_failure("process_refund"):
            return {
                "success": False,
                "reason": "refund_blocked",
                "message": "Refund blocked - order may need to be cancelled first",
            }

        return {
            "success": True,
            "refundId": self._token("REF"),
            "amount": self._amount(20, 200),
            "processingTime": "3-5 business days",
            "orderId": args["orderId"],
            "itemId": args["itemId"],
        }

    async def send_replacement(self, args: Dict[str, Any]) -> Dict[str, Any]:
        if self._domain_failure("send_replacement"):
            return {
                "success": False,
                "reason": "out_of_stock",
                "message": "Item currently out of stock. Would you prefer a refund or different color/model?",
            }

        return {
            "success": True,
            "replacementOrderId": self._token("RPL"),
            "trackingNumber": self._token("TRK"),
            "estimatedDelivery": "2-4 business days",
            "originalOrderId": args["orderId"],
            "originalItemId": args["itemId"],
        }

    async def cancel_order(self, args: Dict[str, Any]) -> Dict[str, Any]:
        order_id = args["orderId"]

        if self._domain_failure("cancel_order"):
            return {
                "success": False,
                "status": "pending_verification",
                "message": (
                    "Order cancellation requires additional verification. "
                    f"Please confirm you want to cancel order {order_id}"
                ),
            }

        return {
            "success": True,
            "orderId": order_id,
            "status": "cancelled",
            "refundAmount": self._amount(50, 300),
            "refundProcessingTime": "3-5 business days",
        }

    async def verify_refund(self, args: Dict[str, Any]) -> Dict[str, Any]:
        status = self.rng.choice(REFUND_STATUSES)

        return {
            "refundId": args["refundId"],
            "status": status,
            "amount": self._amount(20, 200),
            "processedDate": date.today().isoformat() if status == "completed" else None,
            "expectedDate": "2-3 business days" if status == "in_progress" else None,
            "failureReason": "Payment method no longer valid" if status == "failed" else None,
        }

    async def process_return(self, args: Dict[str, Any]) -> Dict[str, Any]:
        self._transient("process_return", "Return label generation failed - please retry")

        return_id = self._token("RET")
        return {
            "success": True,
            "returnId": return_id,
            "returnLabel": f"https://returns.example.com/label/{return_id}",
            "returnAddress": RETURN_ADDRESS,
            "deadline": "30 days from today",
            "orderId": args["orderId"],
            "itemId": args["itemId"],
        }

    async def tier2_support_escalation(self, args: Dict[str, Any]) -> Dict[str, Any]:
        # High-latency backend; yields to the event loop while waiting
        await self._sleep(self.rng.uniform(*ESCALATION_DELAY_RANGE))

        if self._domain_failure("tier2_support_escalation"):
            return {
                "success": False,
                "status": "needs_more_info",
                "message": "Tier 2 support needs additional details about the issue. Please provide more context.",
            }

        return {
            "success": True,
            "ticketId": self._token("T2-"),
            "status": "escalated",
            "assignedAgent": "Senior Support Specialist",
            "expectedResponse": "24-48 hours",
            "priority": "high",
            "issueSummary": args["issueSummary"],
        }
