"""Query documents and explicit schema references.

A document is split into blocks on blank lines, the way query scripts are
separated into independent queries. Each block is scanned for explicit
``cluster('...')`` and ``database('...')`` references. The scanner only
tokenizes; it skips comments and string literals so that references inside
them are not reported.
"""

import re
from collections.abc import Iterator
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from kql_symbols.models.symbols import GlobalState

_BLANK_LINE = re.compile(r"\n[ \t\r\f\v]*\n")
_NAME_START = re.compile(r"[A-Za-z_$]")
_NAME_CHAR = re.compile(r"[A-Za-z0-9_$]")
_MULTILINE_QUOTES = ("```", "~~~")


class Token(NamedTuple):
    kind: str  # name, string or punct
    text: str
    start: int
    end: int
    value: str = ""


class ClusterReference(BaseModel):
    """An explicit ``cluster(...)`` reference."""

    model_config = ConfigDict(frozen=True)

    cluster: str = Field(..., description="Referenced cluster name or URI")
    start: int = Field(..., description="Offset of the reference in the document")
    length: int = Field(..., description="Length of the reference text")


class DatabaseReference(BaseModel):
    """An explicit ``database(...)`` reference, possibly qualified by a cluster."""

    model_config = ConfigDict(frozen=True)

    database: str = Field(..., description="Referenced database name")
    cluster: str | None = Field(None, description="Qualifying cluster, or None for the default")
    start: int = Field(..., description="Offset of the reference in the document")
    length: int = Field(..., description="Length of the reference text")


class QueryBlock(BaseModel):
    """One blank-line separated query of a document."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., description="Offset of the block in the document")
    end: int = Field(..., description="Offset just past the block")
    cluster_references: tuple[ClusterReference, ...] = ()
    database_references: tuple[DatabaseReference, ...] = ()

    def get_cluster_references(self) -> list[ClusterReference]:
        return list(self.cluster_references)

    def get_database_references(self) -> list[DatabaseReference]:
        return list(self.database_references)


class QueryDocument(BaseModel):
    """Query text bound to the symbol snapshot it is analyzed against.

    Example:
        >>> doc = QueryDocument(text="cluster('help').database('Samples').StormEvents")
        >>> [r.cluster for r in doc.get_cluster_references()]
        ['help']
        >>> [(r.cluster, r.database) for r in doc.get_database_references()]
        [('help', 'Samples')]
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Query text")
    globals: GlobalState = Field(default_factory=GlobalState.default, description="Symbols")

    @property
    def blocks(self) -> list[QueryBlock]:
        return split_blocks(self.text)

    def get_cluster_references(self) -> list[ClusterReference]:
        return [ref for block in self.blocks for ref in block.cluster_references]

    def get_database_references(self) -> list[DatabaseReference]:
        return [ref for block in self.blocks for ref in block.database_references]

    def with_globals(self, globals: GlobalState) -> "QueryDocument":
        """Return the same text bound to another snapshot."""
        return self.model_copy(update={"globals": globals})

    def get_line_and_column(self, offset: int) -> tuple[int, int] | None:
        """Map a text offset to a 1-based line and column.

        Returns:
            tuple[int, int] | None: Line and column, or None if the offset is
                outside the text.
        """
        if offset < 0 or offset > len(self.text):
            return None
        line = self.text.count("\n", 0, offset) + 1
        column = offset - (self.text.rfind("\n", 0, offset) + 1) + 1
        return line, column


def split_blocks(text: str) -> list[QueryBlock]:
    """Split text into blocks and scan each one for references.

    Blank lines inside multi-line string literals do not end a block.
    """
    groups: list[tuple[int, list[Token]]] = [(0, [])]
    previous_end: int | None = None
    for token in tokenize(text):
        if previous_end is not None:
            gap = _BLANK_LINE.search(text, previous_end, token.start)
            if gap is not None:
                groups.append((token.start, []))
        groups[-1][1].append(token)
        previous_end = token.end

    blocks = []
    for index, (start, tokens) in enumerate(groups):
        end = groups[index + 1][0] if index + 1 < len(groups) else len(text)
        clusters, databases = _find_references(tokens)
        blocks.append(
            QueryBlock(
                start=start,
                end=end,
                cluster_references=tuple(clusters),
                database_references=tuple(databases),
            )
        )
    return blocks


def tokenize(text: str) -> Iterator[Token]:
    """Yield name, string and punctuation tokens, skipping whitespace and comments."""
    index = 0
    length = len(text)
    while index < length:
        ch = text[index]

        if ch.isspace():
            index += 1
            continue

        if text.startswith("//", index):
            newline = text.find("\n", index)
            index = length if newline < 0 else newline
            continue

        multiline = next((q for q in _MULTILINE_QUOTES if text.startswith(q, index)), None)
        if multiline is not None:
            close = text.find(multiline, index + 3)
            end = length if close < 0 else close + 3
            value = text[index + 3 : close if close >= 0 else length]
            yield Token("string", text[index:end], index, end, value)
            index = end
            continue

        string_start = _string_prefix_length(text, index)
        if string_start is not None:
            end, value = _read_string(text, index, string_start)
            yield Token("string", text[index:end], index, end, value)
            index = end
            continue

        if _NAME_START.match(ch):
            end = index + 1
            while end < length and _NAME_CHAR.match(text[end]):
                end += 1
            yield Token("name", text[index:end], index, end)
            index = end
            continue

        yield Token("punct", ch, index, index + 1)
        index += 1


def _string_prefix_length(text: str, index: int) -> int | None:
    """Length of a string literal prefix (``@``, ``h``, ``h@``) at ``index``, if a literal starts there."""
    for prefix in ("", "@", "h", "H", "h@", "H@"):
        quote_at = index + len(prefix)
        if (
            text.startswith(prefix, index)
            and quote_at < len(text)
            and text[quote_at] in "'\""
        ):
            return len(prefix)
    return None


def _read_string(text: str, index: int, prefix_length: int) -> tuple[int, str]:
    """Read a quoted literal; returns the end offset and the literal value.

    Unterminated literals end at the line end.
    """
    verbatim = text[index:index + prefix_length].endswith("@")
    quote = text[index + prefix_length]
    position = index + prefix_length + 1
    value: list[str] = []
    while position < len(text):
        ch = text[position]
        if ch == "\n":
            return position, "".join(value)
        if ch == quote:
            if verbatim and text.startswith(quote, position + 1):
                value.append(quote)
                position += 2
                continue
            return position + 1, "".join(value)
        if ch == "\\" and not verbatim and position + 1 < len(text):
            value.append(text[position + 1])
            position += 2
            continue
        value.append(ch)
        position += 1
    return position, "".join(value)


def _match_call(tokens: list[Token], index: int, name: str) -> tuple[str, int] | None:
    """Match ``name ( 'lit' ['lit' ...] )`` at ``index``.

    Adjacent string literals are concatenated.

    Returns:
        tuple[str, int] | None: Argument value and the index of the closing
            parenthesis.
    """
    if index + 3 >= len(tokens):
        return None
    if tokens[index].kind != "name" or tokens[index].text != name:
        return None
    if tokens[index + 1].text != "(":
        return None

    position = index + 2
    parts: list[str] = []
    while position < len(tokens) and tokens[position].kind == "string":
        parts.append(tokens[position].value)
        position += 1

    if not parts or position >= len(tokens) or tokens[position].text != ")":
        return None
    return "".join(parts), position


def _find_references(
    tokens: list[Token],
) -> tuple[list[ClusterReference], list[DatabaseReference]]:
    clusters: list[ClusterReference] = []
    databases: list[DatabaseReference] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]

        cluster_call = _match_call(tokens, index, "cluster")
        if cluster_call is not None:
            cluster_name, close = cluster_call
            if cluster_name.strip():
                clusters.append(
                    ClusterReference(
                        cluster=cluster_name,
                        start=token.start,
                        length=tokens[close].end - token.start,
                    )
                )
            index = close + 1
            if index < len(tokens) and tokens[index].text == ".":
                database_call = _match_call(tokens, index + 1, "database")
                if database_call is not None:
                    database_name, close = database_call
                    if database_name.strip() and cluster_name.strip():
                        databases.append(
                            DatabaseReference(
                                database=database_name,
                                cluster=cluster_name,
                                start=token.start,
                                length=tokens[close].end - token.start,
                            )
                        )
                    index = close + 1
            continue

        preceded_by_dot = index > 0 and tokens[index - 1].text == "."
        database_call = None if preceded_by_dot else _match_call(tokens, index, "database")
        if database_call is not None:
            database_name, close = database_call
            if database_name.strip():
                databases.append(
                    DatabaseReference(
                        database=database_name,
                        start=token.start,
                        length=tokens[close].end - token.start,
                    )
                )
            index = close + 1
            continue

        index += 1
    return clusters, databases
