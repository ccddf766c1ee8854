"""Aggregate file — parse AGENTS.md into sections and render it back.

Each skill occupies one marked section:

    <!-- prime-agent(Start NAME) -->
    ## NAME
    ...body...
    <!-- prime-agent(End NAME) -->

Text outside the markers is kept verbatim.
"""

from prime_agent.aggregate.document import (
    AggregateDocument,
    check_encodable,
    parse,
    parse_aggregate,
    render_sections,
    serialize,
)

__all__ = [
    "AggregateDocument",
    "check_encodable",
    "parse",
    "parse_aggregate",
    "render_sections",
    "serialize",
]
