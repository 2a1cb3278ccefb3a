"""
Checkout overlay: VAT surcharge and card-terminal (CLIP) commission.

Applied on top of a cart or rental subtotal right before the sale is
recorded. Produces extra sale lines:
- TAX_IVA: 16% of the subtotal, rounded to cents
- COMMISSION_CLIP: only when the client pays the commission, rounded to
  three decimals so every rate tier keeps its sub-cent precision

When the seller absorbs the commission nothing is added; the amount is
reported on the quote for information only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ..models.sales import COMMISSION_REF, PAYMENT_METHODS, TAX_REF
from cyberpos.validation import to_mills, to_money


VAT_RATE = Decimal("0.16")

# Base commission (%) by financing term; the terminal also charges VAT on it
CLIP_RATES = {
    "CONTADO": Decimal("3.6"),
    "MSI_3": Decimal("5.4"),
    "MSI_6": Decimal("8.4"),
    "MSI_9": Decimal("11.4"),
    "MSI_12": Decimal("14.4"),
}
COMMISSION_VAT_FACTOR = Decimal("1.16")

COMMISSION_PAYERS = ("CLIENT", "SELLER")


class CheckoutError(Exception):
    """Raised for invalid checkout options."""
    pass


@dataclass
class CheckoutQuote:
    subtotal: Decimal
    vat_amount: Decimal
    commission_rate: Decimal  # effective %, VAT on the rate included
    commission_amount: Decimal
    commission_payer: str | None
    final_total: Decimal
    change: Decimal | None = None
    extra_items: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "subtotal": str(to_money(self.subtotal)),
            "vat_amount": str(to_money(self.vat_amount)),
            "commission_rate": str(self.commission_rate),
            "commission_amount": str(to_mills(self.commission_amount)),
            "commission_payer": self.commission_payer,
            "final_total": str(to_money(self.final_total)),
            "change": str(to_money(self.change)) if self.change is not None else None,
            "extra_items": [
                {**item, "price_at_sale": str(item["price_at_sale"]), "cost_at_sale": str(item["cost_at_sale"])}
                for item in self.extra_items
            ],
        }


def effective_commission_rate(clip_term: str) -> Decimal:
    """Percentage actually charged: base rate times 1.16."""
    try:
        return CLIP_RATES[clip_term] * COMMISSION_VAT_FACTOR
    except KeyError:
        raise CheckoutError(f"clip_term must be one of: {', '.join(CLIP_RATES)}")


def quote_checkout(
    subtotal,
    payment_method: str,
    *,
    add_vat: bool = False,
    clip_term: str = "CONTADO",
    commission_payer: str = "CLIENT",
    amount_received=None,
) -> CheckoutQuote:
    """
    Compute VAT, commission, final total and change for a checkout.

    Payment sufficiency is not enforced here; the caller compares
    amount_received against final_total.
    """
    if payment_method not in PAYMENT_METHODS:
        raise CheckoutError(f"Unknown payment method {payment_method}")
    if commission_payer not in COMMISSION_PAYERS:
        raise CheckoutError(f"commission_payer must be one of: {', '.join(COMMISSION_PAYERS)}")

    subtotal = Decimal(subtotal)
    vat_amount = to_money(subtotal * VAT_RATE) if add_vat else Decimal("0")
    total_with_vat = subtotal + vat_amount

    extra_items: list[dict] = []
    if add_vat:
        extra_items.append({
            "product_ref": TAX_REF,
            "product_name": "IVA (16%)",
            "quantity": 1,
            "price_at_sale": vat_amount,
            "cost_at_sale": Decimal("0"),
        })

    commission_rate = Decimal("0")
    commission_amount = Decimal("0")
    payer = None
    final_total = total_with_vat

    if payment_method == "CLIP":
        commission_rate = effective_commission_rate(clip_term)
        commission_amount = to_mills(total_with_vat * commission_rate / Decimal(100))
        payer = commission_payer
        if commission_payer == "CLIENT":
            final_total = total_with_vat + commission_amount
            extra_items.append({
                "product_ref": COMMISSION_REF,
                "product_name": f"Comisión CLIP ({CLIP_RATES[clip_term]}% + IVA)",
                "quantity": 1,
                "price_at_sale": commission_amount,
                "cost_at_sale": Decimal("0"),
            })

    change = None
    if amount_received is not None:
        change = max(Decimal("0"), Decimal(amount_received) - final_total)

    return CheckoutQuote(
        subtotal=subtotal,
        vat_amount=vat_amount,
        commission_rate=commission_rate,
        commission_amount=commission_amount,
        commission_payer=payer,
        final_total=final_total,
        change=change,
        extra_items=extra_items,
    )


def is_payment_sufficient(quote: CheckoutQuote, payment_method: str, amount_received) -> bool:
    """Cash must cover the final total; other methods are charged exactly."""
    if payment_method != "CASH" or amount_received is None:
        return True
    return Decimal(amount_received) >= quote.final_total
