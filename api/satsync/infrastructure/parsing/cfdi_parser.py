"""
Parser de CFDI 3.3 / 4.0.

Extrae del nodo cfdi:Comprobante los datos del emisor/receptor, montos e
impuestos a nivel comprobante, y el UUID del TimbreFiscalDigital.
Usa defusedxml: los XML vienen de un tercero.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional
from xml.etree.ElementTree import Element, ParseError as XmlParseError

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring

from satsync.domain.entities.invoice import ParsedInvoice
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.exceptions.sync import ParseError

CFDI_NAMESPACES = {
    "http://www.sat.gob.mx/cfd/3": "3.3",
    "http://www.sat.gob.mx/cfd/4": "4.0",
}
TFD_LOCAL_NAME = "TimbreFiscalDigital"

IVA = {"002", "IVA"}
IEPS = {"003", "IEPS"}
ISR = {"001", "ISR"}

CENT = Decimal("0.01")
RATE_16 = Decimal("0.16")
RATE_8 = Decimal("0.08")


def _split(tag: str) -> tuple[str, str]:
    """'{ns}Local' -> ('ns', 'Local')."""
    if tag.startswith("{"):
        ns, local = tag[1:].split("}", 1)
        return ns, local
    return "", tag


def _child(parent: Optional[Element], local: str) -> Optional[Element]:
    if parent is None:
        return None
    for child in parent:
        if _split(child.tag)[1] == local:
            return child
    return None


def _children(parent: Optional[Element], local: str) -> Iterable[Element]:
    if parent is None:
        return []
    return [child for child in parent if _split(child.tag)[1] == local]


def _money(value: Optional[str], field: str, required: bool = False) -> Decimal:
    if value is None or value.strip() == "":
        if required:
            raise ParseError(f"Falta el atributo {field}")
        return Decimal("0")
    try:
        amount = Decimal(value.strip())
    except InvalidOperation as e:
        raise ParseError(f"Valor numerico invalido en {field}: {value!r}") from e
    # NaN, sNaN e Infinity son Decimal validos pero no montos
    if not amount.is_finite():
        raise ParseError(f"Valor numerico invalido en {field}: {value!r}")
    return amount


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class CfdiParser:
    """
    Implementacion de DocumentParser para CFDI.

    La direccion se decide por RFC: emitido si el RFC es el emisor, recibido
    si es el receptor. Un CFDI donde el RFC no aparece es un error.
    """

    def parse(
        self,
        raw: bytes,
        subject_id: str,
        direction: Direction,
        document_name: Optional[str] = None,
    ) -> ParsedInvoice:
        try:
            root = fromstring(raw)
        except (XmlParseError, DefusedXmlException, ValueError) as e:
            raise ParseError(f"XML invalido: {e}", document_name) from e

        try:
            return self._parse_comprobante(root, raw, subject_id, Direction(direction))
        except ParseError as e:
            if e.document_name is None and document_name:
                raise ParseError(e.message, document_name) from e
            raise
        except (ArithmeticError, ValueError) as e:
            raise ParseError(f"CFDI con montos o atributos invalidos: {e!r}", document_name) from e

    def _parse_comprobante(
        self, root: Element, raw: bytes, subject_id: str, direction: Direction
    ) -> ParsedInvoice:
        namespace, local = _split(root.tag)
        if local != "Comprobante":
            raise ParseError(f"El nodo raiz es '{local}', se esperaba cfdi:Comprobante")
        version = root.get("Version") or root.get("version") or CFDI_NAMESPACES.get(namespace)
        if not version:
            raise ParseError("No se pudo determinar la version del CFDI")

        timbre = next(
            (node for node in root.iter() if _split(node.tag)[1] == TFD_LOCAL_NAME),
            None,
        )
        uuid = timbre.get("UUID") if timbre is not None else None
        if not uuid:
            raise ParseError("CFDI sin TimbreFiscalDigital/UUID")

        emisor = _child(root, "Emisor")
        receptor = _child(root, "Receptor")
        issuer_rfc = (emisor.get("Rfc") or "").strip().upper() if emisor is not None else ""
        receiver_rfc = (receptor.get("Rfc") or "").strip().upper() if receptor is not None else ""
        if not issuer_rfc or not receiver_rfc:
            raise ParseError("CFDI sin RFC de emisor o receptor")

        subject = subject_id.strip().upper()
        if issuer_rfc == subject and receiver_rfc == subject:
            resolved = direction
        elif issuer_rfc == subject:
            resolved = Direction.ISSUED
        elif receiver_rfc == subject:
            resolved = Direction.RECEIVED
        else:
            raise ParseError(f"El CFDI {uuid} no pertenece al RFC {subject}")

        fecha = root.get("Fecha")
        try:
            issued_at = datetime.fromisoformat(fecha) if fecha else None
        except ValueError as e:
            raise ParseError(f"Fecha invalida: {fecha!r}") from e
        if issued_at is None:
            raise ParseError("CFDI sin Fecha")

        invoice = ParsedInvoice(
            uuid=uuid,
            subject_id=subject,
            direction=resolved,
            version=version,
            invoice_type=(root.get("TipoDeComprobante") or "I").upper(),
            issued_at=issued_at.replace(tzinfo=None),
            issuer_rfc=issuer_rfc,
            issuer_name=emisor.get("Nombre"),
            receiver_rfc=receiver_rfc,
            receiver_name=receptor.get("Nombre"),
            currency=root.get("Moneda") or "MXN",
            exchange_rate=_money(root.get("TipoCambio"), "TipoCambio") if root.get("TipoCambio") else None,
            subtotal=_money(root.get("SubTotal"), "SubTotal", required=True),
            discount=_money(root.get("Descuento"), "Descuento"),
            total=_money(root.get("Total"), "Total", required=True),
            payment_method=root.get("MetodoPago"),
            payment_form=root.get("FormaPago"),
            cfdi_use=receptor.get("UsoCFDI"),
            xml=raw.decode("utf-8", errors="replace"),
            # Se recalculan abajo, ya con impuestos
            taxable_isr=Decimal("0"),
            taxable_iva=Decimal("0"),
        )
        self._apply_taxes(invoice, _child(root, "Impuestos"))
        invoice.taxable_isr, invoice.taxable_iva = invoice.compute_taxable()
        return invoice

    def _apply_taxes(self, invoice: ParsedInvoice, impuestos: Optional[Element]) -> None:
        """Impuestos a nivel comprobante (traslados y retenciones)."""
        for traslado in _children(_child(impuestos, "Traslados"), "Traslado"):
            impuesto = traslado.get("Impuesto", "")
            importe = _money(traslado.get("Importe"), "Traslado.Importe")
            base = _money(traslado.get("Base"), "Traslado.Base")
            if impuesto in IVA:
                invoice.transferred_iva += importe
                tasa = _money(traslado.get("TasaOCuota"), "Traslado.TasaOCuota")
                if traslado.get("TipoFactor") == "Exento":
                    invoice.iva_exempt += base
                elif tasa == RATE_16:
                    invoice.iva_base_16 += base
                elif tasa == RATE_8:
                    invoice.iva_base_8 += base
                elif tasa == 0:
                    invoice.iva_base_0 += base
            elif impuesto in IEPS:
                invoice.transferred_ieps += importe

        for retencion in _children(_child(impuestos, "Retenciones"), "Retencion"):
            impuesto = retencion.get("Impuesto", "")
            importe = _money(retencion.get("Importe"), "Retencion.Importe")
            if impuesto in IVA:
                invoice.withheld_iva += importe
            elif impuesto in ISR:
                invoice.withheld_isr += importe

        invoice.transferred_iva = _round(invoice.transferred_iva)
        invoice.transferred_ieps = _round(invoice.transferred_ieps)
        invoice.withheld_iva = _round(invoice.withheld_iva)
        invoice.withheld_isr = _round(invoice.withheld_isr)
