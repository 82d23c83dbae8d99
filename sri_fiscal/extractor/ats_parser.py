"""ATS (Anexo Transaccional Simplificado) XML parsing.

Parses the monthly or semester ATS annex with lxml and folds its purchase
line items into three category tables: purchases by document type, income-tax
withholdings by retention code, and VAT withholdings by percentage bucket.

Credit notes (document type ``04``) are stored with non-negative
accumulators like any other category; they are subtracted only when totals
are computed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import TYPE_CHECKING

from lxml import etree

from sri_fiscal.config import get_ats_catalog, setup_logging
from sri_fiscal.extractor.results import ExtractionOutcome, FailureReason
from sri_fiscal.utils.parsing import parse_xml_amount, round_amount
from sri_fiscal.utils.periods import PeriodKey, month_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = setup_logging(__name__)

ROOT_TAG = "iva"
CREDIT_NOTE_CODE = "04"
DEFAULT_DOCUMENT_TYPE = "00"
DEFAULT_RETENTION_CODE = "000"
DEFAULT_MONTH = "00"
UNKNOWN_MONTH = "DESCONOCIDO"
VAT_OPERATION = "COMPRA"

# Bucket -> purchase line-item element, in presentation order
VAT_BUCKETS: tuple[tuple[str, str], ...] = (
    ("10", "valRetBien10"),
    ("20", "valRetServ20"),
    ("30", "valorRetBienes"),
    ("50", "valRetServ50"),
    ("70", "valorRetServicios"),
    ("100", "valRetServ100"),
    ("NC", "valorRetencionNc"),
)
VAT_BUCKET_ORDER: tuple[str, ...] = tuple(bucket for bucket, _ in VAT_BUCKETS)

_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")

ZERO = Decimal(0)


class AtsStructureError(ValueError):
    """Raised when an ATS document is not well-formed or lacks the ``iva`` root."""


# =============================================================================
# Category summaries
# =============================================================================


@dataclass
class PurchaseSummary:
    """Purchases of one document type (``tipoComprobante``)."""

    code: str
    description: str
    count: int = 0
    base_zero_rate: Decimal = ZERO
    base_standard_rate: Decimal = ZERO
    base_non_taxable: Decimal = ZERO
    vat_amount: Decimal = ZERO

    @property
    def is_credit_note(self) -> bool:
        return self.code == CREDIT_NOTE_CODE

    @property
    def sign(self) -> int:
        """-1 for credit notes, +1 otherwise."""
        return -1 if self.is_credit_note else 1

    @property
    def base_total(self) -> Decimal:
        return self.base_zero_rate + self.base_standard_rate + self.base_non_taxable

    def merged(self, other: PurchaseSummary) -> PurchaseSummary:
        return PurchaseSummary(
            code=self.code,
            description=self.description,
            count=self.count + other.count,
            base_zero_rate=self.base_zero_rate + other.base_zero_rate,
            base_standard_rate=self.base_standard_rate + other.base_standard_rate,
            base_non_taxable=self.base_non_taxable + other.base_non_taxable,
            vat_amount=self.vat_amount + other.vat_amount,
        )


@dataclass
class IncomeWithholdingSummary:
    """Income-tax withholdings of one retention code (``codRetAir``)."""

    code: str
    description: str
    count: int = 0
    base: Decimal = ZERO
    withheld: Decimal = ZERO

    def merged(self, other: IncomeWithholdingSummary) -> IncomeWithholdingSummary:
        return IncomeWithholdingSummary(
            code=self.code,
            description=self.description,
            count=self.count + other.count,
            base=self.base + other.base,
            withheld=self.withheld + other.withheld,
        )


@dataclass
class VatWithholdingSummary:
    """VAT withheld in one percentage bucket (``10`` ... ``100`` or ``NC``)."""

    bucket: str
    withheld: Decimal = ZERO
    operation: str = VAT_OPERATION

    @property
    def concept(self) -> str:
        if self.bucket == "NC":
            return "Retención IVA NC"
        return f"Retención IVA {self.bucket}%"

    def merged(self, other: VatWithholdingSummary) -> VatWithholdingSummary:
        return VatWithholdingSummary(self.bucket, self.withheld + other.withheld, self.operation)


@dataclass(frozen=True)
class PurchaseTotals:
    count: int
    base_zero_rate: Decimal
    base_standard_rate: Decimal
    base_non_taxable: Decimal
    vat_amount: Decimal

    @property
    def base_total(self) -> Decimal:
        return self.base_zero_rate + self.base_standard_rate + self.base_non_taxable


@dataclass(frozen=True)
class AtsTotals:
    """Section totals, rounded to two decimals.

    Purchase totals subtract the credit-note category; the withholding
    totals are plain sums.
    """

    purchases: PurchaseTotals
    income_base: Decimal
    income_withheld: Decimal
    vat_withheld: Decimal


def _vat_bucket_index(summary: VatWithholdingSummary) -> int:
    if summary.bucket in VAT_BUCKET_ORDER:
        return VAT_BUCKET_ORDER.index(summary.bucket)
    return len(VAT_BUCKET_ORDER)


def sort_vat_withholdings(items: Iterable[VatWithholdingSummary]) -> list[VatWithholdingSummary]:
    """Order VAT buckets 10/20/30/50/70/100/NC."""
    return sorted(items, key=lambda item: (_vat_bucket_index(item), item.bucket))


def compute_totals(
    purchases: Iterable[PurchaseSummary],
    income_withholdings: Iterable[IncomeWithholdingSummary],
    vat_withholdings: Iterable[VatWithholdingSummary],
) -> AtsTotals:
    """Compute section totals, applying the credit-note reversal once."""
    purchases = list(purchases)
    income_withholdings = list(income_withholdings)

    def signed_sum(attribute: str) -> Decimal:
        return round_amount(sum((item.sign * getattr(item, attribute) for item in purchases), ZERO))

    purchase_totals = PurchaseTotals(
        count=sum(item.count for item in purchases),
        base_zero_rate=signed_sum("base_zero_rate"),
        base_standard_rate=signed_sum("base_standard_rate"),
        base_non_taxable=signed_sum("base_non_taxable"),
        vat_amount=signed_sum("vat_amount"),
    )
    return AtsTotals(
        purchases=purchase_totals,
        income_base=round_amount(sum((item.base for item in income_withholdings), ZERO)),
        income_withheld=round_amount(sum((item.withheld for item in income_withholdings), ZERO)),
        vat_withheld=round_amount(sum((item.withheld for item in vat_withholdings), ZERO)),
    )


@dataclass
class AtsPeriodSummary:
    """One ATS document (or a merge of several) folded into category tables.

    Attributes
    ----------
        taxpayer_id: ``IdInformante``
        legal_name: ``razonSocial``
        year: ``Anio`` as written in the document
        month: ``Mes`` as written (``"00"`` when absent)
        period_label: ``"MARZO 2024"``, ``"1er SEMESTRE 2024"`` or a
            consolidation label
        source_name: Document identifier
        purchases: Per document type, sorted by code
        income_withholdings: Per retention code, sorted by code
        vat_withholdings: Non-zero buckets in fixed bucket order
    """

    taxpayer_id: str
    legal_name: str
    year: str
    month: str
    period_label: str
    source_name: str = ""
    purchases: list[PurchaseSummary] = field(default_factory=list)
    income_withholdings: list[IncomeWithholdingSummary] = field(default_factory=list)
    vat_withholdings: list[VatWithholdingSummary] = field(default_factory=list)

    @property
    def totals(self) -> AtsTotals:
        return compute_totals(self.purchases, self.income_withholdings, self.vat_withholdings)

    @property
    def month_number(self) -> int | None:
        return int(self.month) if self.month.isdigit() and 1 <= int(self.month) <= 12 else None

    @property
    def period_key(self) -> PeriodKey | None:
        if self.month_number is None or not self.year.isdigit():
            return None
        return PeriodKey.monthly(self.month_number, int(self.year))

    @property
    def sort_key(self) -> tuple[int, int]:
        year = int(self.year) if self.year.isdigit() else 0
        return (year, self.month_number or 13)

    def purchase(self, code: str) -> PurchaseSummary | None:
        return next((item for item in self.purchases if item.code == code), None)

    def income_withholding(self, code: str) -> IncomeWithholdingSummary | None:
        return next((item for item in self.income_withholdings if item.code == code), None)

    def vat_withholding(self, bucket: str) -> VatWithholdingSummary | None:
        return next((item for item in self.vat_withholdings if item.bucket == bucket), None)


# =============================================================================
# Parsing
# =============================================================================


@lru_cache(maxsize=1)
def _default_catalogs() -> tuple[dict[str, str], dict[str, str]]:
    return get_ats_catalog("document_types"), get_ats_catalog("retention_codes")


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


def _parse_root(content: str | bytes, source_name: str) -> etree._Element:
    """Parse the document and return its ``iva`` element."""
    if not content or not content.strip():
        msg = f"Error al analizar el archivo XML: {source_name}"
        raise AtsStructureError(msg)

    try:
        if isinstance(content, str):
            # lxml rejects str input that carries an encoding declaration
            text = _XML_DECLARATION_RE.sub("", content.lstrip("\ufeff"), count=1)
            root = etree.fromstring(text, _make_parser())
        else:
            try:
                root = etree.fromstring(content, _make_parser())
            except etree.XMLSyntaxError as e:
                # Fallback: undeclared ISO-8859-1 bytes
                logger.debug("Initial parse failed, trying ISO-8859-1: %s", e)
                root = etree.fromstring(content.decode("iso-8859-1").encode("utf-8"), _make_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        msg = f"Error al analizar el archivo XML: {source_name}"
        raise AtsStructureError(msg) from e

    iva = root if root.tag == ROOT_TAG else root.find(f".//{ROOT_TAG}")
    if iva is None:
        msg = f"Estructura XML inválida en {source_name}: Falta nodo raíz '{ROOT_TAG}'."
        raise AtsStructureError(msg)
    return iva


def _text(element: etree._Element, tag: str, default: str = "") -> str:
    """Text of the first ``tag`` descendant, stripped; ``default`` if empty."""
    found = element.find(f".//{tag}")
    if found is None or not (found.text or "").strip():
        return default
    return found.text.strip()


def _amount(element: etree._Element, tag: str) -> Decimal:
    return parse_xml_amount(_text(element, tag))


def build_period_label(year: str, month: str, semiannual: bool = False) -> str:
    """Label an ATS period: ``"MARZO 2024"``, ``"1er SEMESTRE 2024"``.

    In semiannual mode the June and December annexes are labelled as the
    first and second semester; any other month keeps its month label.
    """
    number = int(month) if month.isdigit() else 0
    if semiannual and number == 6:
        return f"1er SEMESTRE {year}"
    if semiannual and number == 12:
        return f"2do SEMESTRE {year}"
    return f"{month_name(number) or UNKNOWN_MONTH} {year}"


def parse_ats_document(
    content: str | bytes,
    source_name: str,
    semiannual: bool = False,
    document_types: Mapping[str, str] | None = None,
    retention_codes: Mapping[str, str] | None = None,
) -> AtsPeriodSummary:
    """Parse one ATS XML document into an :class:`AtsPeriodSummary`.

    Parameters
    ----------
    content : str | bytes
        Raw XML. Bytes are decoded per their declaration, with one retry as
        ISO-8859-1.
    source_name : str
        Document identifier used in messages.
    semiannual : bool, optional
        Label June/December annexes as semesters.
    document_types, retention_codes : Mapping[str, str] | None, optional
        Description catalogs; default to ``config/ats/*.json``.

    Returns
    -------
    AtsPeriodSummary
        Category tables for the document. A document with no purchase line
        items yields empty tables.

    Raises
    ------
    AtsStructureError
        If the XML is malformed or has no ``iva`` element.
    """
    if document_types is None or retention_codes is None:
        default_types, default_codes = _default_catalogs()
        document_types = default_types if document_types is None else document_types
        retention_codes = default_codes if retention_codes is None else retention_codes

    iva = _parse_root(content, source_name)

    year = _text(iva, "Anio")
    month = _text(iva, "Mes", DEFAULT_MONTH)

    purchases: dict[str, PurchaseSummary] = {}
    income: dict[str, IncomeWithholdingSummary] = {}
    vat = dict.fromkeys(VAT_BUCKET_ORDER, ZERO)

    line_items = 0
    for item in iva.iter("detalleCompras"):
        line_items += 1
        code = _text(item, "tipoComprobante", DEFAULT_DOCUMENT_TYPE)
        purchase = purchases.get(code)
        if purchase is None:
            purchase = PurchaseSummary(code, document_types.get(code, f"TIPO {code}"))
            purchases[code] = purchase

        purchase.count += 1
        purchase.base_zero_rate += _amount(item, "baseImponible")
        purchase.base_standard_rate += _amount(item, "baseImpGrav")
        purchase.base_non_taxable += _amount(item, "baseNoGraIva") + _amount(item, "baseImpExe")
        purchase.vat_amount += _amount(item, "montoIva")

        for air in item.iter("detalleAir"):
            retention_code = _text(air, "codRetAir", DEFAULT_RETENTION_CODE)
            base = _amount(air, "baseImpAir")
            withheld = _amount(air, "valRetAir")
            if base > 0 or withheld > 0:
                withholding = income.get(retention_code)
                if withholding is None:
                    description = retention_codes.get(retention_code, f"RETENCIÓN COD {retention_code}")
                    withholding = IncomeWithholdingSummary(retention_code, description)
                    income[retention_code] = withholding
                withholding.count += 1
                withholding.base += base
                withholding.withheld += withheld

        for bucket, tag in VAT_BUCKETS:
            vat[bucket] += _amount(item, tag)

    summary = AtsPeriodSummary(
        taxpayer_id=_text(iva, "IdInformante"),
        legal_name=_text(iva, "razonSocial"),
        year=year,
        month=month,
        period_label=build_period_label(year, month, semiannual),
        source_name=source_name,
        purchases=[purchases[code] for code in sorted(purchases)],
        income_withholdings=[income[code] for code in sorted(income)],
        vat_withholdings=[VatWithholdingSummary(bucket, value) for bucket, value in vat.items() if value != 0],
    )
    logger.debug(
        "%s: %s, %d line items, %d document types",
        source_name,
        summary.period_label,
        line_items,
        len(summary.purchases),
    )
    return summary


def extract_ats_document(
    source_name: str,
    content: str | bytes,
    semiannual: bool = False,
) -> ExtractionOutcome[AtsPeriodSummary]:
    """Parse one ATS document, reporting malformation as a failure value."""
    try:
        summary = parse_ats_document(content, source_name, semiannual=semiannual)
    except AtsStructureError as e:
        logger.warning("%s", e)
        return ExtractionOutcome.failed(source_name, FailureReason.MALFORMED_DOCUMENT, str(e))
    return ExtractionOutcome.success(source_name, summary)
