# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import dataclasses
import enum
import logging
import typing as t

from ._controls import ControlOptions, LDAPControl, PagedResultControl, find_control
from ._messages import (
    LDAPMessage,
    LDAPResult,
    SearchResultDone,
    SearchResultEntry,
    SearchResultReference,
)
from ._result import LDAPError, ProtocolError

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class EntryAttribute:
    """An attribute of a search result entry.

    Args:
        name: The attribute name as returned by the server.
        values: The attribute values decoded as strings.
        byte_values: The raw attribute values.
    """

    name: str
    values: t.List[str]
    byte_values: t.List[bytes]


@dataclasses.dataclass(frozen=True)
class Entry:
    """A directory entry returned by a search.

    The attributes are kept in the order returned by the server, duplicate
    attribute names are preserved and are not merged.

    Args:
        dn: The distinguished name of the entry.
        attributes: The attributes of the entry.
    """

    dn: str
    attributes: t.List[EntryAttribute]

    @classmethod
    def from_message(
        cls,
        msg: SearchResultEntry,
        string_encoding: str = "utf-8",
    ) -> Entry:
        # Values that are not valid strings, like objectGUID, are still
        # represented through surrogateescape, byte_values has the raw value.
        attributes = [
            EntryAttribute(
                name=attr.name,
                values=[v.decode(string_encoding, errors="surrogateescape") for v in attr.values],
                byte_values=list(attr.values),
            )
            for attr in msg.attributes
        ]
        return Entry(dn=msg.object_name, attributes=attributes)

    def get_attribute_values(
        self,
        name: str,
    ) -> t.List[str]:
        """Returns the values of the first attribute with the name or an empty list."""
        attr = self._get_attribute(name)
        return list(attr.values) if attr else []

    def get_attribute_value(
        self,
        name: str,
    ) -> str:
        """Returns the first value of the attribute or an empty string."""
        values = self.get_attribute_values(name)
        return values[0] if values else ""

    def get_raw_attribute_values(
        self,
        name: str,
    ) -> t.List[bytes]:
        attr = self._get_attribute(name)
        return list(attr.byte_values) if attr else []

    def get_raw_attribute_value(
        self,
        name: str,
    ) -> bytes:
        values = self.get_raw_attribute_values(name)
        return values[0] if values else b""

    def pretty_format(
        self,
        indent: int = 0,
    ) -> str:
        """Formats the entry for display.

        Args:
            indent: The number of spaces to prefix the DN line with, the
                attribute lines are indented by a further 2 spaces.

        Returns:
            str: The multiline representation of the entry.
        """
        prefix = " " * indent
        lines = [f"{prefix}DN: {self.dn}"]
        for attr in self.attributes:
            lines.append(f"{prefix}  {attr.name}: {attr.values}")

        return "\n".join(lines)

    def _get_attribute(
        self,
        name: str,
    ) -> t.Optional[EntryAttribute]:
        return next((a for a in self.attributes if a.name == name), None)


@dataclasses.dataclass(frozen=True)
class SearchResult:
    """The aggregated result of a search operation.

    Args:
        entries: The entries returned by the search.
        referrals: The referral URIs from any search result references.
        controls: The controls on the search result done message.
        result: The result of the search operation.
    """

    entries: t.List[Entry]
    referrals: t.List[str]
    controls: t.List[LDAPControl]
    result: LDAPResult


def collect_search_result(
    messages: t.Iterable[LDAPMessage],
    message_id: t.Optional[int] = None,
    string_encoding: str = "utf-8",
) -> SearchResult:
    """Aggregates the responses of a search operation.

    Collects the entries and references until the SearchResultDone message is
    found. Any messages after the SearchResultDone are ignored.

    Args:
        messages: The messages received for the search.
        message_id: Only process messages for this message id, if set.
        string_encoding: The encoding used to decode the attribute values.

    Returns:
        SearchResult: The aggregated search result.

    Raises:
        ProtocolError: No SearchResultDone message was found.
    """
    entries: t.List[Entry] = []
    referrals: t.List[str] = []

    for msg in messages:
        if message_id is not None and msg.message_id != message_id:
            continue

        if isinstance(msg, SearchResultEntry):
            entries.append(Entry.from_message(msg, string_encoding=string_encoding))

        elif isinstance(msg, SearchResultReference):
            referrals.extend(msg.uris)

        elif isinstance(msg, SearchResultDone):
            return SearchResult(
                entries=entries,
                referrals=referrals,
                controls=list(msg.controls),
                result=msg.result,
            )

    raise ProtocolError("Search responses did not contain a SearchResultDone message")


class PagingState(enum.Enum):
    """The state of a paged search."""

    IDLE = enum.auto()
    "No page has been requested yet."

    REQUESTING = enum.auto()
    "The controls for the next page are being created."

    AWAITING_RESPONSE = enum.auto()
    "A page was requested and the SearchResultDone has not been processed."

    HAS_MORE_COOKIE = enum.auto()
    "The server returned a cookie, another page can be requested."

    DONE = enum.auto()
    "The server has returned all the pages."


class SearchPager:
    """Drives a paged search.

    The pager only creates the paging control for each request and tracks the
    cookie returned by the server. The caller sends each search request with
    the controls from :meth:`request_controls` and passes the controls of the
    SearchResultDone to :meth:`process_response` until it returns False.

    Example:
        .. code-block:: python

            pager = SearchPager(size=500)
            while True:
                client.search_request("", filter="(objectClass=user)", controls=pager.request_controls())
                ...  # exchange data until the SearchResultDone is received
                if not pager.process_response(done.controls):
                    break

    Args:
        size: The page size to request.
        critical: Whether the paging control is marked as critical.
        options: The control options used to decode the server control if it
            was not decoded as a paging control.
    """

    def __init__(
        self,
        size: int,
        critical: bool = False,
        options: t.Optional[ControlOptions] = None,
    ) -> None:
        self.size = size
        self.critical = critical
        self.cookie = b""
        self.state = PagingState.IDLE
        self.pages = 0
        self._options = options or ControlOptions()

    @property
    def done(self) -> bool:
        return self.state == PagingState.DONE

    def request_controls(
        self,
        extra: t.Optional[t.Iterable[LDAPControl]] = None,
    ) -> t.List[LDAPControl]:
        """Get the controls for the next page request.

        Args:
            extra: Extra controls to send with the request.

        Returns:
            List[LDAPControl]: The controls to send, the paging control is
            always last.
        """
        if self.state not in [PagingState.IDLE, PagingState.HAS_MORE_COOKIE]:
            raise LDAPError(f"Cannot request the next page when the paged search is {self.state.name}")

        self.state = PagingState.REQUESTING
        controls = list(extra or [])
        controls.append(PagedResultControl(critical=self.critical, size=self.size, cookie=self.cookie))
        self.state = PagingState.AWAITING_RESPONSE

        return controls

    def process_response(
        self,
        controls: t.Iterable[LDAPControl],
    ) -> bool:
        """Process the controls of the SearchResultDone for the page.

        Args:
            controls: The controls from the SearchResultDone message.

        Returns:
            bool: True if another page is available, False if the search is
            complete.
        """
        if self.state != PagingState.AWAITING_RESPONSE:
            raise LDAPError(f"Cannot process a page response when the paged search is {self.state.name}")

        self.pages += 1
        control = find_control(controls, PagedResultControl.control_type)
        if control is not None and not isinstance(control, PagedResultControl):
            control = PagedResultControl.unpack(control.control_type, control.critical, control.value, self._options)

        if isinstance(control, PagedResultControl) and control.cookie:
            self.cookie = control.cookie
            self.state = PagingState.HAS_MORE_COOKIE
            return True

        log.debug("Paged search completed after %d pages", self.pages)
        self.cookie = b""
        self.state = PagingState.DONE
        return False
