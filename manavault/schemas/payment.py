"""
Pydantic schemas for confirmed payments.

A PaymentConfirmation is produced by the payment provider integration once
a checkout is paid. It is applied exactly once per confirmed payment;
deduplication is the caller's job.

quantity arrives from checkout metadata and may be a string or missing; it
is sanitized by payment_service.sanitize_quantity.
"""

from typing import Literal

from pydantic import BaseModel, model_validator

PaymentKind = Literal["card", "set", "reload", "increase", "increase_for_card"]


class PaymentConfirmation(BaseModel):
    """Request body for POST /admin/payments/confirm."""
    user_id: str
    kind: PaymentKind
    quantity: int | str | None = 1
    card_id: str | None = None
    set_id: str | None = None

    @model_validator(mode="after")
    def check_target(self) -> "PaymentConfirmation":
        if self.kind in ("card", "increase_for_card") and not self.card_id:
            raise ValueError(f"card_id is required for {self.kind} payments")
        if self.kind == "set" and not self.set_id:
            raise ValueError("set_id is required for set payments")
        return self
