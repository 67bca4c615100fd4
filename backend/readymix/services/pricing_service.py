"""
Pricing Service
Price-by-delivery-method selection and cart/order totals (MYR)

Author: ReadyMix
Date: 2025-06-05
"""
from typing import Dict, List, Optional, Iterable

from readymix.core.config import settings
from readymix.domain.product import Product, DELIVERY_PRICE_FIELDS
from readymix.domain.cart import CartItem, AdditionalService, FreightCharge


def _money(value: float) -> float:
    return round(float(value), 2)


def get_product_price(product: Product, delivery_method: Optional[str] = None) -> float:
    """
    Flat unit price of a product for a delivery method

    Unknown methods (and None) use normal_price. A tier without a price
    falls back to normal_price, then to 0.
    """
    field = DELIVERY_PRICE_FIELDS.get(delivery_method or "normal", "normal_price")

    price = getattr(product, field, None)
    if price is None:
        price = product.normal_price

    return float(price) if price is not None else 0.0


def line_total(item: CartItem) -> float:
    if item.product is None:
        return 0.0
    return _money(get_product_price(item.product, item.variant_type) * item.quantity)


def calculate_cart_totals(items: Iterable[CartItem]) -> Dict[str, float]:
    """
    Totals over the selected cart lines

    shipping is free from FREE_SHIPPING_THRESHOLD upwards, tax is TAX_RATE
    of the subtotal.
    """
    selected = [item for item in items if item.selected]
    if not selected:
        return {'subtotal': 0.0, 'shipping': 0.0, 'tax': 0.0, 'total': 0.0}

    subtotal = sum(line_total(item) for item in selected)
    shipping = 0.0 if subtotal >= settings.FREE_SHIPPING_THRESHOLD else settings.FLAT_SHIPPING_FEE
    tax = subtotal * settings.TAX_RATE
    total = subtotal + shipping + tax

    return {
        'subtotal': _money(subtotal),
        'shipping': _money(shipping),
        'tax': _money(tax),
        'total': _money(total),
    }


def find_freight_charge(freight_charges: Iterable[FreightCharge], volume: float) -> Optional[FreightCharge]:
    """First active band (by min_volume) containing the volume"""
    if volume <= 0:
        return None

    bands = sorted(
        (charge for charge in freight_charges if charge.is_active),
        key=lambda charge: charge.min_volume
    )
    return next((charge for charge in bands if charge.matches(volume)), None)


def calculate_order_totals_with_services(
    items: Iterable[CartItem],
    selected_service_codes: Iterable[str],
    services: Iterable[AdditionalService],
    freight_charges: Iterable[FreightCharge]
) -> Dict:
    """
    Totals for checkout: products + per-m3 services + freight band + tax

    Returns:
        Dict with subtotal, total_volume, services (breakdown), services_total,
        freight_charge, freight (matched band or None), tax and total
    """
    selected = [item for item in items if item.selected]
    codes = set(selected_service_codes or [])

    subtotal = sum(line_total(item) for item in selected)
    total_volume = float(sum(item.quantity for item in selected))

    service_lines: List[Dict] = []
    for service in services:
        if service.service_code not in codes:
            continue
        rate = float(service.rate_per_m3)
        service_lines.append({
            'additional_service_id': service.id,
            'service_code': service.service_code,
            'service_name': service.service_name,
            'rate_per_m3': rate,
            'quantity': total_volume,
            'total_price': _money(rate * total_volume),
        })
    services_total = sum(line['total_price'] for line in service_lines)

    band = find_freight_charge(freight_charges, total_volume)
    freight = float(band.delivery_fee) if band else 0.0

    taxable = subtotal + services_total + freight
    tax = taxable * settings.TAX_RATE

    return {
        'subtotal': _money(subtotal),
        'total_volume': total_volume,
        'services': service_lines,
        'services_total': _money(services_total),
        'freight_charge': _money(freight),
        'freight': band.to_dict() if band else None,
        'tax': _money(tax),
        'total': _money(taxable + tax),
    }


def calculate_discounted_total(
    subtotal: float,
    discount_rate: Optional[float] = None,
    delivery_fee: Optional[float] = None
) -> Dict[str, float]:
    """Cart page summary: subtotal minus discount plus a flat delivery fee"""
    if discount_rate is None:
        discount_rate = settings.LEGACY_DISCOUNT_RATE
    if delivery_fee is None:
        delivery_fee = settings.LEGACY_DELIVERY_FEE

    discount = subtotal * discount_rate

    return {
        'subtotal': _money(subtotal),
        'discount': _money(discount),
        'delivery_fee': _money(delivery_fee),
        'total': _money(subtotal - discount + delivery_fee),
    }


def to_stripe_amount(total: float) -> int:
    """Amount in the smallest currency unit (sen)"""
    return int(round(float(total) * 100))
