"""
=============================================================================
CONTENT-ENCODING NEGOTIATION
=============================================================================

Decides whether a body stream gets wrapped in a compressor.

    extension compressible? ── no ──► unchanged, EncodingDecision.NONE
          │ yes
    client list well formed? ─ no ──► unchanged, EncodingDecision.MALFORMED
          │ yes
    first client encoding the server allows?
          │ none                      │ found
          ▼                           ▼
    unchanged, NONE             CompressedStream(stream, enc)
                                Content-Encoding: enc
                                Transfer-Encoding: chunked
                                Vary: Accept-Encoding

=============================================================================
WHO WINS
=============================================================================

The CLIENT's order decides. The server list is only a membership test:

    server zip = ["gzip", "deflate"]
    Accept-Encoding: deflate, gzip      → deflate

Client order comes from parse_accept_encoding(): q=0 entries dropped,
stable-sorted by q-value so equal weights keep header order.

Media files are never compressed; only the text formats below are.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .streams import ByteStream, CompressedStream, DEFAULT_COMPRESSION_LEVEL, is_supported_encoding


logger = logging.getLogger(__name__)

COMPRESSIBLE_EXTENSIONS = frozenset({
    ".html", ".css", ".js", ".json", ".xml", ".svg", ".txt",
})

DEFAULT_ENCODINGS = ("deflate", "gzip")


class DecisionKind(Enum):
    NONE = "none"
    SELECTED = "selected"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class EncodingDecision:
    """Tagged decision: NONE, SELECTED(encoding) or MALFORMED."""

    kind: DecisionKind
    encoding: Optional[str] = None

    @classmethod
    def selected(cls, encoding: str) -> "EncodingDecision":
        return cls(DecisionKind.SELECTED, encoding)

    @property
    def is_selected(self) -> bool:
        return self.kind is DecisionKind.SELECTED


NO_ENCODING = EncodingDecision(DecisionKind.NONE)
MALFORMED = EncodingDecision(DecisionKind.MALFORMED)


@dataclass
class Negotiation:
    """The (possibly wrapped) stream, the decision and the headers to set."""

    stream: ByteStream
    decision: EncodingDecision
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def drops_content_length(self) -> bool:
        return self.decision.is_selected


def resolve_zip_policy(policy: Any) -> List[str]:
    """
    Map the ``zip`` option to the list of encodings the server offers.

        False     → []
        True      → ["deflate", "gzip"]
        "br"      → ["br"]
        [..]      → as given
        other     → []

    Names without an available compressor are dropped with a warning.
    """
    if policy is True:
        names = list(DEFAULT_ENCODINGS)
    elif isinstance(policy, str):
        names = [policy]
    elif isinstance(policy, (list, tuple)):
        names = list(policy)
    else:
        return []

    offered = []
    for name in names:
        token = str(name).strip().lower()
        if is_supported_encoding(token):
            offered.append(token)
        else:
            logger.warning(f"Ignoring unsupported content encoding: {name!r}")
    return offered


def select_encoding(client_encodings: Any, offered: Sequence[str]) -> EncodingDecision:
    """Pick the first client encoding that the server offers."""
    if not isinstance(client_encodings, list):
        return MALFORMED

    for encoding in client_encodings:
        if encoding in offered:
            return EncodingDecision.selected(encoding)
    return NO_ENCODING


def negotiate(
    stream: ByteStream,
    extension: str,
    client_encodings: Optional[List[str]],
    policy: Any,
    level: int = DEFAULT_COMPRESSION_LEVEL,
) -> Negotiation:
    """
    Wrap ``stream`` in a compressor when the file type and both sides agree.

    Args:
        stream: Body stream (whole file or one range).
        extension: File extension including the dot, any case.
        client_encodings: Ordered client list from parse_accept_encoding(),
            or None when the request had no Accept-Encoding header.
        policy: The ``zip`` configuration value.
        level: zlib level / brotli quality.
    """
    if extension.lower() not in COMPRESSIBLE_EXTENSIONS:
        return Negotiation(stream, NO_ENCODING)

    decision = select_encoding(client_encodings, resolve_zip_policy(policy))
    if not decision.is_selected:
        return Negotiation(stream, decision)

    headers = {
        "Content-Encoding": decision.encoding,
        "Transfer-Encoding": "chunked",
        "Vary": "Accept-Encoding",
    }
    compressed = CompressedStream(stream, decision.encoding, level=level)
    return Negotiation(compressed, decision, headers)


def parse_accept_encoding(header: Optional[str]) -> Optional[List[str]]:
    """
    Turn an Accept-Encoding header into an ordered list of tokens.

        "gzip;q=0.5, br, identity;q=0"  → ["br", "gzip"]

    Returns None when the header is absent. Unparseable q-values count
    as 1.0.
    """
    if header is None:
        return None

    weighted = []
    for position, item in enumerate(header.split(",")):
        token, _, params = item.partition(";")
        token = token.strip().lower()
        if not token:
            continue

        quality = _parse_quality(params)
        if quality <= 0:
            continue
        weighted.append((-quality, position, token))

    weighted.sort()
    return [token for _, _, token in weighted]


def _parse_quality(params: str) -> float:
    for param in params.split(";"):
        name, _, value = param.partition("=")
        if name.strip().lower() == "q":
            try:
                return float(value.strip())
            except ValueError:
                return 1.0
    return 1.0
