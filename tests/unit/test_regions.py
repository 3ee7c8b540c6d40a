"""
Tests for protected-region extraction.

Includes a property-based check that any hand-written region body survives
regeneration byte-for-byte.
"""

from __future__ import annotations

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from husl.core import ir
from husl.core.parser import parse_document
from husl.generate.config import StackConfig
from husl.generate.merge import MergeEngine
from husl.generate.projector import project
from husl.generate.regions import (
    DUPLICATE_NAME,
    MALFORMED,
    MISMATCHED_END,
    NESTED,
    UNMATCHED_END,
    UNTERMINATED,
    MarkerStyle,
    RegionExtractor,
    contract_fingerprint,
)

# =============================================================================
# Strategy Definitions
# =============================================================================


# Lines that can never be mistaken for a marker
region_lines = st.text(
    alphabet=st.characters(categories=["L", "N", "Zs"], include_characters="#()[]=:.,_-'\"+*/"),
    max_size=40,
).filter(lambda line: "HUSL" not in line)

region_bodies = st.lists(region_lines, max_size=8).map(lambda lines: "".join(f"{line}\n" for line in lines))

PING_SPEC = """\
# Operations

Operation: Ping
  Endpoint: GET /ping
  Custom Implementation:
    - audit (before): logs every call
    - enrich (after): adds server time
"""

CONFIG = StackConfig()
PING_ARTIFACT = project(parse_document(PING_SPEC), CONFIG).get("app/services/ping.py")


def extract(text: str, markers: MarkerStyle | None = None):
    return RegionExtractor(markers).extract(text, "app/example.py")


# =============================================================================
# Extraction
# =============================================================================


class TestExtraction:
    """Tests for RegionExtractor on well-formed input."""

    def test_region_fields(self) -> None:
        text = "x = 1\n# HUSL:BEGIN audit hook=before contract=abc123abc123\nlog()\n# HUSL:END audit\n"
        result = extract(text)

        assert result.ok
        region = result.regions[0]
        assert region.name == "audit"
        assert (region.start_line, region.end_line) == (2, 4)
        assert region.content == "log()\n"
        assert region.hook == ir.HookType.BEFORE
        assert region.fingerprint == "abc123abc123"
        assert text[region.start_offset : region.end_offset] == "log()\n"

    def test_indented_markers(self) -> None:
        text = "def f():\n    # HUSL:BEGIN body\n    return 1\n    # HUSL:END body\n"
        assert extract(text).regions[0].content == "    return 1\n"

    def test_empty_region(self) -> None:
        region = extract("# HUSL:BEGIN a\n# HUSL:END a\n").regions[0]
        assert region.content == ""
        assert region.start_offset == region.end_offset

    def test_unknown_hook_is_recorded_as_none(self) -> None:
        region = extract("# HUSL:BEGIN a hook=around\n# HUSL:END a\n").regions[0]
        assert region.hook is None

    def test_token_inside_a_word_is_ignored(self) -> None:
        result = extract("xHUSL:BEGIN a\n")
        assert result.ok
        assert result.regions == []

    def test_offsets_are_string_offsets(self) -> None:
        text = "# héllo wörld\n# HUSL:BEGIN a\nçà\n# HUSL:END a\n"
        region = extract(text).regions[0]
        assert text[region.start_offset : region.end_offset] == "çà\n"

    def test_custom_marker_style(self) -> None:
        markers = MarkerStyle(start="KEEP-START", end="KEEP-END", comment="//")
        text = "// KEEP-START custom\nint x;\n// KEEP-END custom\n// HUSL:BEGIN ignored\n"
        result = extract(text, markers)
        assert result.ok
        assert [r.name for r in result.regions] == ["custom"]

    def test_rendered_marker_round_trip(self) -> None:
        markers = MarkerStyle()
        text = markers.render("audit", ir.HookType.AFTER, "logs", "    pass\n", indent="    ")
        region = extract(text).regions[0]
        assert region.fingerprint == contract_fingerprint(ir.HookType.AFTER, "logs")
        assert region.content == "    pass\n"


class TestMarkerErrors:
    """Tests for malformed marker detection."""

    def test_nested(self) -> None:
        result = extract("# HUSL:BEGIN a\n# HUSL:BEGIN b\n# HUSL:END a\n")
        assert [e.kind for e in result.errors] == [NESTED]
        assert result.errors[0].line == 2

    def test_unterminated(self) -> None:
        result = extract("# HUSL:BEGIN a\ncode\n")
        assert [e.kind for e in result.errors] == [UNTERMINATED]
        assert result.errors[0].line == 1
        assert result.regions == []

    def test_unmatched_end(self) -> None:
        assert [e.kind for e in extract("code\n# HUSL:END a\n").errors] == [UNMATCHED_END]

    def test_mismatched_end(self) -> None:
        assert [e.kind for e in extract("# HUSL:BEGIN a\n# HUSL:END b\n").errors] == [MISMATCHED_END]

    def test_malformed(self) -> None:
        assert [e.kind for e in extract("# HUSL:BEGIN\n").errors] == [MALFORMED]

    def test_duplicate_names_are_not_blocking(self) -> None:
        """Test duplicates are captured so the merge engine can report them."""
        result = extract("# HUSL:BEGIN a\n# HUSL:END a\n# HUSL:BEGIN a\n# HUSL:END a\n")
        assert [e.kind for e in result.errors] == [DUPLICATE_NAME]
        assert result.blocking_errors == []
        assert len(result.regions) == 2

    def test_error_serialization(self) -> None:
        error = extract("# HUSL:END a\n").errors[0]
        assert error.to_dict()["kind"] == UNMATCHED_END
        assert error.to_dict()["line"] == 1
        assert error.to_dict()["path"] == "app/example.py"


# =============================================================================
# Preservation property
# =============================================================================


class TestRegionPreservation:
    """Property tests for region content surviving regeneration."""

    @given(audit=region_bodies, enrich=region_bodies)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_hand_written_bodies_survive(self, audit: str, enrich: str) -> None:
        extractor = RegionExtractor(CONFIG.markers())
        fresh = extractor.extract(PING_ARTIFACT.content, PING_ARTIFACT.path).regions
        assert [r.name for r in fresh] == ["audit", "enrich"]

        # edit the later region first so earlier offsets stay valid
        edited = PING_ARTIFACT.content
        for region, body in reversed(list(zip(fresh, [audit, enrich], strict=True))):
            edited = edited[: region.start_offset] + body + edited[region.end_offset :]

        prior = extractor.extract(edited, PING_ARTIFACT.path)
        assert prior.ok

        merged = MergeEngine(CONFIG.markers()).merge(PING_ARTIFACT, prior.regions)
        assert merged.ok
        assert merged.content == edited
        assert [r.content for r in extractor.extract(merged.content, PING_ARTIFACT.path).regions] == [audit, enrich]
