"""
Error descriptions: turn the furthest failure position of a parse into a
line number, the offending line and a caret-underlined message.
"""

from dataclasses import dataclass, field

from typing import AbstractSet, Tuple


__all__ = [
    "line_info",
    "ErrorDescription",
]


def line_info(content: str, position: int) -> Tuple[int, str, int]:
    r"""
    Return the (1-indexed) line number, the text of that line (without its
    newline) and the (0-indexed) offset within the line of the specified
    position.

    Lines are delimited by ``\n``. A position pointing at a newline belongs to
    the line that newline terminates, and a position at the very end of the
    content belongs to the last line.
    """
    if not 0 <= position <= len(content):
        raise ValueError(
            f"position {position} lies outside content of length {len(content)}"
        )

    line_nr = 1
    start = 0
    while True:
        end = content.find("\n", start)
        if end == -1 or end >= position:
            line = content[start:] if end == -1 else content[start:end]
            return line_nr, line, position - start
        start = end + 1
        line_nr += 1


@dataclass
class ErrorDescription:
    """
    Describes where a parse failed and what was expected there, as produced
    by :py:meth:`.ParsingContext.get_error_description`.
    """

    error_position: int
    """Offset into the content of the furthest failure."""

    expectations: AbstractSet[str] = field(default_factory=frozenset)
    """The expectations registered at :py:attr:`error_position`."""

    error_line_nr: int = 1
    """Line number the error occurred in. The first line is 1."""

    error_line: str = ""
    """The input line the error occurred in."""

    index_in_error_line: int = 0
    """Offset of the error within :py:attr:`error_line`."""

    @classmethod
    def from_content(
        cls, content: str, error_position: int, expectations: AbstractSet[str]
    ) -> "ErrorDescription":
        description = cls(error_position, frozenset(expectations))
        description.fill_line_info(content)
        return description

    def fill_line_info(self, content: str) -> None:
        """
        Set :py:attr:`error_line_nr`, :py:attr:`error_line` and
        :py:attr:`index_in_error_line` from the content and
        :py:attr:`error_position`.
        """
        (
            self.error_line_nr,
            self.error_line,
            self.index_in_error_line,
        ) = line_info(content, self.error_position)

    def error_line_underline(self, spacer: str = " ", marker: str = "^") -> str:
        """
        Return a line suitable for underlining :py:attr:`error_line`: spacers
        up to the error, the marker under the error and spacers for the rest
        of the line.
        """
        trailing = max(0, len(self.error_line) - 1 - self.index_in_error_line)
        return (spacer * self.index_in_error_line) + marker + (spacer * trailing)

    def __str__(self) -> str:
        return "Error on line {}. Expected: {}\n{}\n{}".format(
            self.error_line_nr,
            ", ".join(sorted(self.expectations)),
            self.error_line,
            self.error_line_underline(),
        )
