"""Checkout Pydantic schemas for Stripe PaymentIntent requests."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PaymentIntentCreate(BaseModel):
    """Schema for starting a payment via POST /checkout/payment-intent."""

    order_id: UUID = Field(description="Pending order to pay for")


class PaymentIntentResponse(BaseModel):
    """Schema for payment intent creation response."""

    model_config = ConfigDict(from_attributes=True)

    order_id: UUID = Field(description="Order being paid")
    payment_intent_id: str = Field(description="Stripe PaymentIntent ID")
    client_secret: str = Field(description="Client secret for Stripe.js confirmation")
    amount: int = Field(description="Amount in cents")
    currency: str = Field(description="Currency code")
    formatted_amount: str | None = Field(default=None, description="Amount formatted for the request locale")
    publishable_key: str | None = Field(default=None, description="Stripe publishable key for Stripe.js")
