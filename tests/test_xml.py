"""Unit tests for the XML to dict conversion."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

import pytest

from qrz import ParseError, document_to_dict, parse_response, xml_to_dict

from qrz_responses import callsign_xml


# ---------------------------------------------------------------------------
# xml_to_dict
# ---------------------------------------------------------------------------


class TestXmlToDict:
    def test_attributes_text_and_nesting(self) -> None:
        root = ET.fromstring(
            "<doc>"
            "<e1>"
            '<e2 attr1="1">e2_value</e2>'
            "<e3><e4>e4_value</e4></e3>"
            "</e1>"
            "</doc>"
        )
        assert xml_to_dict(root) == {
            "e1": {
                "e2.attr1": "1",
                "e2": "e2_value",
                "e3": {"e4": "e4_value"},
            }
        }

    def test_empty_element_becomes_empty_dict(self) -> None:
        root = ET.fromstring("<doc><a></a><b/></doc>")
        assert xml_to_dict(root) == {"a": {}, "b": {}}

    def test_indentation_is_not_text(self) -> None:
        root = ET.fromstring("<doc>\n  <a>\n    <b>x</b>\n  </a>\n</doc>")
        assert xml_to_dict(root) == {"a": {"b": "x"}}

    def test_text_is_kept_verbatim(self) -> None:
        root = ET.fromstring("<doc><a> padded value </a></doc>")
        assert xml_to_dict(root) == {"a": " padded value "}

    def test_element_with_text_ignores_children(self) -> None:
        root = ET.fromstring("<doc><a>head<b>inner</b>tail</a></doc>")
        assert xml_to_dict(root) == {"a": "headtail"}

    def test_namespaces_are_dropped(self) -> None:
        root = ET.fromstring(
            '<doc xmlns="urn:a" xmlns:x="urn:x">'
            '<item x:kind="k">v</item>'
            "</doc>"
        )
        assert xml_to_dict(root) == {"item.kind": "k", "item": "v"}

    def test_repeated_siblings_keep_last(self, caplog: pytest.LogCaptureFixture) -> None:
        root = ET.fromstring("<doc><a>first</a><a>second</a></doc>")
        with caplog.at_level(logging.WARNING, logger="qrz"):
            result = xml_to_dict(root)
        assert result == {"a": "second"}
        assert "Repeated <a>" in caplog.text

    def test_deterministic(self) -> None:
        root = ET.fromstring('<doc><a k="v"><b>1</b></a><c>2</c></doc>')
        assert xml_to_dict(root) == xml_to_dict(root)


# ---------------------------------------------------------------------------
# document_to_dict / parse_response
# ---------------------------------------------------------------------------


class TestDocument:
    def test_root_is_top_level_key(self) -> None:
        root = ET.fromstring('<QRZDatabase version="1.34"><x>1</x></QRZDatabase>')
        assert document_to_dict(root) == {
            "QRZDatabase.version": "1.34",
            "QRZDatabase": {"x": "1"},
        }

    def test_parse_qrz_lookup_response(self) -> None:
        result = parse_response(callsign_xml("KE2EHU"))
        db = result["QRZDatabase"]
        assert result["QRZDatabase.version"] == "1.34"
        assert db["Session"]["Key"] == "abc123"
        assert db["Callsign"]["call"] == "KE2EHU"
        assert db["Callsign"]["grid"] == "FN31"
        assert db["Callsign"]["addr1"] == {}

    def test_parse_bytes_uses_declared_encoding(self) -> None:
        body = (
            '<?xml version="1.0" encoding="utf-8" ?>'
            "<QRZDatabase><Callsign><name>Müller</name></Callsign></QRZDatabase>"
        ).encode("utf-8")
        result = parse_response(body)
        assert result["QRZDatabase"]["Callsign"]["name"] == "Müller"

    def test_parse_is_idempotent(self) -> None:
        text = callsign_xml("KE2EHU")
        assert parse_response(text) == parse_response(text)

    @pytest.mark.parametrize("text", ["", "<QRZDatabase>", "not xml at all"])
    def test_malformed_xml(self, text: str) -> None:
        with pytest.raises(ParseError):
            parse_response(text)
