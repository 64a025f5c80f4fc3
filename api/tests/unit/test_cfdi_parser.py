"""
Tests para CfdiParser.
"""
from decimal import Decimal

import pytest

from satsync.infrastructure.parsing import CfdiParser
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.exceptions.sync import ParseError

UUID = "6f3a1c2e-8b4d-4e5f-9a0b-1c2d3e4f5a6b"


@pytest.fixture
def parser() -> CfdiParser:
    return CfdiParser()


class TestCfdiParser:

    def test_parses_received_invoice(self, parser, make_cfdi) -> None:
        """Verifica los campos basicos de un CFDI recibido."""
        invoice = parser.parse(make_cfdi(UUID), "RFC123", Direction.RECEIVED)

        assert invoice.uuid == UUID.upper()
        assert invoice.direction == Direction.RECEIVED
        assert invoice.issuer_rfc == "XAXX010101000"
        assert invoice.receiver_rfc == "RFC123"
        assert invoice.version == "4.0"
        assert invoice.invoice_type == "I"
        assert invoice.subtotal == Decimal("1000.00")
        assert invoice.total == Decimal("1160.00")
        assert invoice.transferred_iva == Decimal("160.00")
        assert invoice.iva_base_16 == Decimal("1000.00")
        assert invoice.issued_at.year == 2025
        assert invoice.cfdi_use == "G03"

    def test_received_taxable_rebuilds_base_from_iva(self, parser, make_cfdi) -> None:
        """Verifica que en gastos el gravado ISR se reconstruye desde el IVA al 16%."""
        invoice = parser.parse(make_cfdi(UUID), "RFC123", Direction.RECEIVED)

        assert invoice.taxable_isr == Decimal("1000.00")
        assert invoice.taxable_iva == Decimal("160.00")

    def test_received_without_iva_uses_total(self, parser, make_cfdi) -> None:
        raw = make_cfdi(UUID, subtotal="500.00", total="500.00", iva=None)
        invoice = parser.parse(raw, "RFC123", Direction.RECEIVED)

        assert invoice.taxable_isr == Decimal("500.00")
        assert invoice.taxable_iva == Decimal("0")

    def test_personal_deduction_is_not_taxable(self, parser, make_cfdi) -> None:
        """Verifica que usos D* (deducciones personales) no cuentan como gasto."""
        invoice = parser.parse(make_cfdi(UUID, uso_cfdi="D01"), "RFC123", Direction.RECEIVED)

        assert invoice.taxable_isr == Decimal("0")
        assert invoice.taxable_iva == Decimal("0")

    def test_issued_direction_resolved_from_rfc(self, parser, make_cfdi) -> None:
        """Verifica que la direccion se decide por el RFC emisor."""
        raw = make_cfdi(UUID, issuer_rfc="RFC123", receiver_rfc="XAXX010101000")
        invoice = parser.parse(raw, "rfc123", Direction.RECEIVED)

        assert invoice.direction == Direction.ISSUED
        assert invoice.taxable_isr == Decimal("1000.00")
        assert invoice.taxable_iva == Decimal("160.00")

    def test_foreign_rfc_is_parse_error(self, parser, make_cfdi) -> None:
        raw = make_cfdi(UUID, issuer_rfc="AAA010101AAA", receiver_rfc="BBB010101BBB")

        with pytest.raises(ParseError):
            parser.parse(raw, "RFC123", Direction.RECEIVED)

    def test_malformed_xml(self, parser) -> None:
        """Verifica que un XML roto lanza ParseError con el nombre del documento."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse(b"<cfdi:Comprobante", "RFC123", Direction.RECEIVED, "roto.xml")

        assert exc_info.value.document_name == "roto.xml"

    def test_missing_uuid(self, parser, make_cfdi) -> None:
        raw = make_cfdi(UUID).replace(f' UUID="{UUID}"'.encode(), b"")

        with pytest.raises(ParseError, match="UUID"):
            parser.parse(raw, "RFC123", Direction.RECEIVED, "sin_timbre.xml")

    def test_invalid_amount(self, parser, make_cfdi) -> None:
        raw = make_cfdi(UUID, total="mil")

        with pytest.raises(ParseError, match="Total"):
            parser.parse(raw, "RFC123", Direction.RECEIVED)

    @pytest.mark.parametrize("value", ["sNaN", "NaN", "Infinity", "-Infinity"])
    def test_non_finite_amount(self, parser, make_cfdi, value) -> None:
        """Verifica que NaN/Infinity en un impuesto se reportan como ParseError."""
        raw = make_cfdi(UUID, iva=value)

        with pytest.raises(ParseError, match="Valor numerico invalido") as exc_info:
            parser.parse(raw, "RFC123", Direction.RECEIVED, "nan.xml")

        assert exc_info.value.document_name == "nan.xml"

    def test_non_finite_total(self, parser, make_cfdi) -> None:
        with pytest.raises(ParseError, match="Total"):
            parser.parse(make_cfdi(UUID, total="Infinity"), "RFC123", Direction.RECEIVED)

    def test_wrong_root(self, parser) -> None:
        with pytest.raises(ParseError, match="Comprobante"):
            parser.parse(b"<Factura/>", "RFC123", Direction.RECEIVED)

    def test_entity_expansion_is_rejected(self, parser) -> None:
        """Verifica que XML con entidades (billion laughs) no se procesa."""
        raw = (
            b'<?xml version="1.0"?>'
            b'<!DOCTYPE lolz [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;">]>'
            b"<lolz>&lol2;</lolz>"
        )
        with pytest.raises(ParseError):
            parser.parse(raw, "RFC123", Direction.RECEIVED)
