from __future__ import annotations

from typing import List


QUOTE = '"'
DELIMITER = ","


def _strip_outer_quotes(cell: str) -> str:
    if cell.startswith(QUOTE):
        cell = cell[1:]
    if cell.endswith(QUOTE):
        cell = cell[:-1]
    return cell


def parse_line(line: str) -> List[str]:
    cells: List[str] = []
    current: List[str] = []
    in_quotes = False
    last = len(line) - 1

    for idx, char in enumerate(line):
        if char == QUOTE and (idx == 0 or line[idx - 1] == DELIMITER):
            in_quotes = True
        elif char == QUOTE and in_quotes and (idx == last or line[idx + 1] == DELIMITER):
            in_quotes = False
        elif char == DELIMITER and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    cells.append("".join(current).strip())
    return [_strip_outer_quotes(cell) for cell in cells]


def parse_csv(raw_text: str) -> List[List[str]]:
    """Split CSV text into a grid of string cells.

    Rows are separated by ``\\n`` and blank or whitespace-only lines are
    dropped, so an intentionally empty record does not survive parsing.
    Quoted spans protect embedded commas, but doubled quotes (``""``) are
    not unescaped and a quoted field cannot span lines.
    """
    lines = [line for line in raw_text.split("\n") if line.strip()]
    return [parse_line(line) for line in lines]
