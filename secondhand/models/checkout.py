"""
Checkout intent document

Write-ahead record for one checkout request, stored at checkout:{id}.
Every requested listing gets a line that starts PENDING and ends COMMITTED
or SKIPPED. The record is deleted once every line is settled, so a batch
still stored as PENDING was interrupted and can be resumed. A batch that
cannot be resumed is kept as FAILED for inspection.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

KEY_PREFIX = "checkout:"


class CheckoutStatus(str, Enum):
    PENDING = "pending"
    FAILED = "failed"


class LineStatus(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    SKIPPED = "skipped"


class CheckoutLine(BaseModel):
    product_id: str
    # Minted up front so a resumed line rewrites the same purchase key
    purchase_id: str
    status: LineStatus = LineStatus.PENDING


class CheckoutIntent(BaseModel):
    id: str
    user_id: str
    created_at: str
    status: CheckoutStatus = CheckoutStatus.PENDING
    failed_at: Optional[str] = None
    lines: List[CheckoutLine] = Field(default_factory=list)

    @staticmethod
    def key(batch_id: str) -> str:
        return f"{KEY_PREFIX}{batch_id}"

    def pending_lines(self) -> List[CheckoutLine]:
        return [line for line in self.lines if line.status == LineStatus.PENDING]
