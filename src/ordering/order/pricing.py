"""Order totals from cart lines: tax, shipping and a clamped discount."""


def price_order(lines, tax_rate, free_shipping_threshold, flat_shipping_fee, discount=0.0, currency="VND"):
    """Return the pricing dict for ``lines`` (each with ``unit_price`` and ``quantity``).

    The discount comes from the coupon engine; it is clamped so the total
    never drops below zero.
    """
    subtotal = float(sum(line["unit_price"] * line["quantity"] for line in lines))
    tax = float(round(subtotal * tax_rate))
    shipping_fee = 0.0 if subtotal >= free_shipping_threshold else float(flat_shipping_fee)
    gross = subtotal + tax + shipping_fee
    discount = min(max(float(discount or 0.0), 0.0), gross)

    return {
        "subtotal": subtotal,
        "tax": tax,
        "shipping_fee": shipping_fee,
        "discount": discount,
        "total": gross - discount,
        "currency": currency,
    }
