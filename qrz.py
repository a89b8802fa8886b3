"""
QRZ XML Callbook Client

A small wrapper around the QRZ XML Callbook Data Service
(https://www.qrz.com/page/xml_data.html). A QRZSession logs in with a
username and password, keeps the session key handed out by QRZ, and logs
in again on its own when that key expires.

Responses are returned as nested dicts built from the XML document:

    <QRZDatabase version="1.34">
      <Session>
        <Key>abc123</Key>
      </Session>
    </QRZDatabase>

becomes

    {"QRZDatabase.version": "1.34",
     "QRZDatabase": {"Session": {"Key": "abc123"}}}

Usage:
    with QRZSession() as qrz:
        qrz.login("N0CALL", "secret")
        record = qrz.lookup_callsign("KE2EHU")
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Union

import requests

log = logging.getLogger(__name__)

QRZ_HOST        = "xmldata.qrz.com"
QRZ_PATH        = "/xml/current/"
DEFAULT_TIMEOUT = 30

ResponseMapping = dict[str, Union[str, "ResponseMapping"]]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class QRZError(Exception):
    """Base class for all errors raised by this module."""


class NoSessionError(QRZError):
    """A query was attempted before login()."""


class TransportError(QRZError):
    """The HTTP exchange with QRZ failed."""

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(message)
        else:
            super().__init__(f"error {status_code}: {message}")


class ParseError(QRZError):
    """The QRZ response was not well-formed XML."""


class SessionError(QRZError):
    """QRZ reported an error in the Session section of a response."""


class CallsignNotFoundError(SessionError):
    """The looked up callsign is not in the QRZ database."""


class UnknownError(QRZError):
    """QRZ refused the request without saying why."""


# ---------------------------------------------------------------------------
# XML flattening
# ---------------------------------------------------------------------------

def _local_name(name: str) -> str:
    return name.rsplit("}", 1)[-1]


def _text_content(element: ET.Element) -> str:
    # Only the element's own text nodes; blank indentation is ignored.
    pieces = [element.text] + [child.tail for child in element]
    return "".join(p for p in pieces if p and p.strip())


def _add_element(result: ResponseMapping, element: ET.Element) -> None:
    key = _local_name(element.tag)

    for attr, value in element.attrib.items():
        result[f"{key}.{_local_name(attr)}"] = value

    if key in result:
        log.warning("Repeated <%s> element; keeping the last occurrence", key)

    text = _text_content(element)
    result[key] = text if text else xml_to_dict(element)


def xml_to_dict(node: ET.Element) -> ResponseMapping:
    """
    Convert the children of an XML element into a dict.

    Each child element becomes a key. Attributes are stored under
    "<element>.<attribute>". An element with text maps to that text, any
    other element maps to the conversion of its own children.

    Sibling elements sharing a tag name collapse into one key; the last one
    wins. QRZ responses do not repeat tags, so a warning is logged instead.

    NOTE: recursive, one level per nesting level of the document.
    """
    result: ResponseMapping = {}
    for child in node:
        _add_element(result, child)
    return result


def document_to_dict(root: ET.Element) -> ResponseMapping:
    """Convert a whole document, keeping the root element as the top key."""
    result: ResponseMapping = {}
    _add_element(result, root)
    return result


def parse_response(body: bytes | str) -> ResponseMapping:
    """
    Parse a QRZ XML response body into a dict. Namespaces are dropped.

    Pass the raw bytes where possible so the parser decodes them by the
    document's own encoding declaration.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise ParseError(f"malformed XML response: {exc}") from exc
    return document_to_dict(root)


def _session_section(result: ResponseMapping) -> ResponseMapping:
    db = result.get("QRZDatabase")
    session = db.get("Session") if isinstance(db, dict) else None
    return session if isinstance(session, dict) else {}


def _session_field(result: ResponseMapping, field: str) -> str | None:
    value = _session_section(result).get(field)
    if isinstance(value, str) and value:
        return value
    return None


def session_message(result: ResponseMapping) -> str | None:
    """Return the informational Session.Message of a response, if any."""
    return _session_field(result, "Message")


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class QRZSession:
    """
    A QRZ XML API session.

    The session remembers the credentials given to login() and the session
    key QRZ returns. Queries reuse the key and, when QRZ no longer accepts
    it, log in again once with the stored credentials.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        agent: str | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.agent = agent
        self._http = http if http is not None else requests.Session()
        self._protocol = "https"
        self._credentials: dict[str, str] | None = None
        self._session_key: str | None = None

    @property
    def protocol(self) -> str:
        return self._protocol

    @property
    def session_key(self) -> str | None:
        return self._session_key

    @property
    def is_authenticated(self) -> bool:
        return self._session_key is not None

    @property
    def base_url(self) -> str:
        return f"{self._protocol}://{QRZ_HOST}{QRZ_PATH}"

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> QRZSession:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # -- transport ----------------------------------------------------------

    def _raw_get(self, params: dict[str, str]) -> ResponseMapping:
        """
        GET the QRZ endpoint with the given query parameters and return the
        parsed response. No session handling happens here: a session key,
        when needed, must already be part of params.
        """
        if self.agent:
            params = {**params, "agent": self.agent}

        log.debug("GET %s (%s)", self.base_url, ", ".join(sorted(params)))
        try:
            with self._http.get(self.base_url, params=params, timeout=self.timeout) as resp:
                if not resp.ok:
                    raise TransportError(resp.status_code, resp.reason or "request failed")
                return parse_response(resp.content)
        except requests.RequestException as exc:
            raise TransportError(None, str(exc)) from exc

    # -- session management -------------------------------------------------

    def query(self, **params: str) -> ResponseMapping:
        """
        Query the QRZ API, taking care of the session key.

        The cached session key is tried first. If QRZ does not accept it (no
        Key in the response), the stored credentials are used to start a new
        session. Raises NoSessionError if login() was never called.
        """
        if self._credentials is None:
            raise NoSessionError("missing session. did you call login()?")

        if self._session_key:
            result = self._raw_get({"s": self._session_key, **params})
            key = _session_field(result, "Key")
            if key:
                self._session_key = key
                return result
            log.info("QRZ session expired, logging in again")
            self._session_key = None

        result = self._raw_get({**self._credentials, **params})
        key = _session_field(result, "Key")
        if key:
            self._session_key = key
            log.info("QRZ session established")
            return result

        error = _session_field(result, "Error")
        if error:
            raise SessionError(error)
        raise UnknownError("unknown error occurred")

    # -- public API ---------------------------------------------------------

    def login(self, username: str, password: str, secure: bool = True) -> ResponseMapping:
        """
        Establish a session with the given username and password.

        With secure=False the plain http endpoint is used for this and all
        later queries. Returns the login response, which carries
        subscription details and any notice from QRZ in its Session section.
        """
        self._protocol = "https" if secure else "http"
        self._session_key = None
        self._credentials = {"username": username, "password": password}
        return self.query()

    def lookup_callsign(self, callsign: str) -> ResponseMapping:
        """Look up a callsign record. login() must be called first."""
        result = self.query(callsign=callsign)

        # An empty <Error/> still marks a failed lookup
        if "Error" in _session_section(result):
            error = _session_field(result, "Error") or "lookup failed without a message"
            if error.lower().startswith("not found"):
                raise CallsignNotFoundError(error)
            raise SessionError(error)

        return result
