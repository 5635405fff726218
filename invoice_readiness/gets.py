"""
The GETS canonical invoice schema.

GETS is the fixed 19-field invoice data model that uploaded datasets are
measured against. Each field carries its expected type, whether it is
required, a weight for coverage scoring, and the alternate column names it is
commonly exported under. The same variant lists drive both the field detector
and the rule checks, so a column recognised by one is recognised by the other.

The schema is an immutable value built once at import time. Components take
it as a parameter (defaulting to GETS_SCHEMA) and never modify it.
"""

import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .inference import ExpectedType

LINES_PREFIX = "lines[]."

_SEPARATORS = re.compile(r"[_\s-]")


def normalize_field_name(name: str) -> str:
    """Lowercase a column name and strip underscores, whitespace and dashes."""
    return _SEPARATORS.sub("", str(name).lower())


@dataclass(frozen=True)
class CanonicalField:
    """
    One field of the GETS schema.

    Attributes:
        path: Dotted canonical path (e.g. "invoice.total_excl_vat", "lines[].qty")
        type: Expected semantic type of the values
        required: Whether a dataset must provide this field
        weight: Importance of the field in coverage scoring (1-3)
        variants: Known alternate column names (case/separator-insensitive)
    """
    path: str
    type: ExpectedType
    required: bool
    weight: int
    variants: tuple[str, ...]

    @property
    def group(self) -> str:
        """Leading segment of the path: invoice, seller, buyer or lines[]."""
        return self.path.split(".", 1)[0]

    @property
    def is_line_field(self) -> bool:
        return self.path.startswith(LINES_PREFIX)

    @property
    def leaf(self) -> str:
        return self.path.rsplit(".", 1)[-1]

    def normalized_variants(self) -> tuple[str, ...]:
        return tuple(normalize_field_name(v) for v in self.variants)

    def lookup_keys(self) -> tuple[str, ...]:
        """
        Normalized keys under which this field may appear in a flattened row.

        Line fields are looked up inside a single line item, so their own key
        is the leaf name; other fields also answer to their dotted path (the
        shape nested JSON objects flatten to).
        """
        own = self.leaf if self.is_line_field else self.path
        keys = [normalize_field_name(own)]
        for variant in self.normalized_variants():
            if variant not in keys:
                keys.append(variant)
        return tuple(keys)


@dataclass(frozen=True)
class GetsSchema:
    """Immutable, ordered collection of canonical fields."""
    version: str
    fields: tuple[CanonicalField, ...]

    def __iter__(self) -> Iterator[CanonicalField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, path: object) -> bool:
        return any(f.path == path for f in self.fields)

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.fields]

    @property
    def total_weight(self) -> int:
        return sum(f.weight for f in self.fields)

    @property
    def required_paths(self) -> list[str]:
        return [f.path for f in self.fields if f.required]

    def get(self, path: str) -> Optional[CanonicalField]:
        for canonical in self.fields:
            if canonical.path == path:
                return canonical
        return None

    def field(self, path: str) -> CanonicalField:
        """Like get(), but raises KeyError for unknown paths."""
        canonical = self.get(path)
        if canonical is None:
            raise KeyError(f"Unknown GETS field: {path}")
        return canonical

    def weight_of(self, path: str, default: int = 1) -> int:
        canonical = self.get(path)
        return canonical.weight if canonical else default


# ============================================================================
# GETS v0.1
# ============================================================================

GETS_SCHEMA = GetsSchema(
    version="0.1",
    fields=(
        # Invoice header
        CanonicalField(
            path="invoice.id", type="string", required=True, weight=3,
            variants=("inv_id", "invoice_id", "inv_no", "invoice_no", "invoice_number", "id"),
        ),
        CanonicalField(
            path="invoice.issue_date", type="date", required=True, weight=3,
            variants=(
                "date", "issuedate", "issue_date", "issued_on", "issuedon",
                "invoice_date", "invoicedate", "created_date", "createddate",
            ),
        ),
        CanonicalField(
            path="invoice.currency", type="enum", required=True, weight=3,
            variants=("currency", "curr", "currency_code"),
        ),
        CanonicalField(
            path="invoice.total_excl_vat", type="number", required=True, weight=3,
            variants=("total_excl_vat", "total_net", "totalNet", "net_total", "subtotal", "totalnet"),
        ),
        CanonicalField(
            path="invoice.vat_amount", type="number", required=True, weight=3,
            variants=("vat_amount", "vat", "tax_amount", "tax"),
        ),
        CanonicalField(
            path="invoice.total_incl_vat", type="number", required=True, weight=3,
            variants=("total_incl_vat", "grand_total", "grandTotal", "total", "grandtotal"),
        ),
        # Seller
        CanonicalField(
            path="seller.name", type="string", required=True, weight=2,
            variants=("seller_name", "sellername", "sellerName", "vendor_name", "supplier_name"),
        ),
        CanonicalField(
            path="seller.trn", type="string", required=True, weight=2,
            variants=("seller_trn", "seller_tax_id", "sellertax", "sellerTax", "vendor_trn", "supplier_trn"),
        ),
        CanonicalField(
            path="seller.country", type="string", required=True, weight=2,
            variants=("seller_country", "vendor_country", "supplier_country"),
        ),
        CanonicalField(
            path="seller.city", type="string", required=False, weight=1,
            variants=("seller_city", "vendor_city", "supplier_city"),
        ),
        # Buyer
        CanonicalField(
            path="buyer.name", type="string", required=True, weight=2,
            variants=("buyer_name", "buyername", "buyerName", "customer_name", "client_name"),
        ),
        CanonicalField(
            path="buyer.trn", type="string", required=True, weight=2,
            variants=("buyer_trn", "buyer_tax_id", "buyertax", "buyerTax", "customer_trn", "client_trn"),
        ),
        CanonicalField(
            path="buyer.country", type="string", required=True, weight=2,
            variants=("buyer_country", "buyerCountry", "customer_country", "client_country"),
        ),
        CanonicalField(
            path="buyer.city", type="string", required=False, weight=1,
            variants=("buyer_city", "customer_city", "client_city"),
        ),
        # Line items
        CanonicalField(
            path="lines[].sku", type="string", required=True, weight=1,
            variants=("sku", "linesku", "lineSku", "line_sku", "product_code", "item_code"),
        ),
        CanonicalField(
            path="lines[].description", type="string", required=False, weight=1,
            variants=("description", "line_description", "product_description", "item_description"),
        ),
        CanonicalField(
            path="lines[].qty", type="number", required=True, weight=1,
            variants=("qty", "quantity", "lineqty", "lineQty", "line_qty", "line_quantity"),
        ),
        CanonicalField(
            path="lines[].unit_price", type="number", required=True, weight=1,
            variants=("unit_price", "price", "lineprice", "linePrice", "line_price", "item_price"),
        ),
        CanonicalField(
            path="lines[].line_total", type="number", required=True, weight=1,
            variants=("line_total", "linetotal", "lineTotal", "total", "amount", "line_amount"),
        ),
    ),
)
