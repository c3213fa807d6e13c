"""Plain-text editor shortcuts: indent/outdent, auto-indent and comment toggle.

Every function takes the current text and selection and returns the edited
text plus where the selection should land afterwards.
"""

import re
from dataclasses import dataclass

TAB = "\t"
TWO_SPACES = "  "

_LEADING_INDENT = re.compile(r"^[\t ]+")
_LEADING_WS = re.compile(r"^\s*")
_ONE_SPACE = re.compile(r"^\s?")


@dataclass
class EditorState:
    value: str
    selection_start: int
    selection_end: int


@dataclass
class KeyEvent:
    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False


def utf16_length(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def from_utf16_offset(text: str, offset: int) -> int:
    """Map a browser selection offset (UTF-16 code units) to a str index."""
    units = 0
    for i, ch in enumerate(text):
        if units >= offset:
            return i
        units += 2 if ord(ch) > 0xFFFF else 1
    return len(text)


def to_utf16_offset(text: str, index: int) -> int:
    return utf16_length(text[:index])


def comment_token(language: str) -> str:
    return "#" if language == "python" else "//"


def line_start(value: str, pos: int) -> int:
    return value.rfind("\n", 0, max(pos, 0)) + 1


def line_end(value: str, pos: int) -> int:
    i = value.find("\n", pos)
    return len(value) if i == -1 else i


def _outdent_width(line: str) -> int:
    if line.startswith(TAB):
        return 1
    if line.startswith(TWO_SPACES):
        return 2
    return 0


def indent(state: EditorState) -> EditorState:
    value, start, end = state.value, state.selection_start, state.selection_end
    first = line_start(value, start)
    last = line_end(value, end)
    selected = value[first:last]

    if start != end and "\n" in selected:
        lines = selected.split("\n")
        new_selected = "\n".join(TAB + ln for ln in lines)
        return EditorState(
            value[:first] + new_selected + value[last:],
            start + len(TAB),
            end + len(lines) * len(TAB),
        )

    pos = start + len(TAB)
    return EditorState(value[:start] + TAB + value[end:], pos, pos)


def outdent(state: EditorState) -> EditorState:
    value, start, end = state.value, state.selection_start, state.selection_end
    first = line_start(value, start)
    last = line_end(value, end)
    selected = value[first:last]

    if start != end and "\n" in selected:
        lines = selected.split("\n")
        new_selected = "\n".join(ln[_outdent_width(ln):] for ln in lines)
        removed = sum(_outdent_width(ln) for ln in lines)
        shift = _outdent_width(value[first:start]) if start > first else 0
        return EditorState(
            value[:first] + new_selected + value[last:],
            start - shift,
            end - removed,
        )

    width = _outdent_width(value[first:])
    if not width:
        return EditorState(value, start, end)
    return EditorState(
        value[:first] + value[first + width:],
        max(first, start - width),
        max(first, end - width),
    )


def newline(state: EditorState) -> EditorState:
    value, start, end = state.value, state.selection_start, state.selection_end
    current = value[line_start(value, start):start]
    match = _LEADING_INDENT.match(current)
    insertion = "\n" + (match.group(0) if match else "")
    pos = start + len(insertion)
    return EditorState(value[:start] + insertion + value[end:], pos, pos)


def toggle_comment(state: EditorState, language: str) -> EditorState:
    token = comment_token(language)
    value, start, end = state.value, state.selection_start, state.selection_end
    first = line_start(value, start)
    last = line_end(value, end)
    lines = value[first:last].split("\n")
    all_commented = all(ln.strip().startswith(token) for ln in lines)

    new_lines = []
    for ln in lines:
        ws = _LEADING_WS.match(ln).group(0)
        rest = ln[len(ws):]
        if all_commented:
            if rest.startswith(token):
                new_lines.append(ws + _ONE_SPACE.sub("", rest[len(token):], count=1))
            else:
                new_lines.append(ln)
        else:
            new_lines.append(f"{ws}{token} {rest}")

    new_selected = "\n".join(new_lines)
    return EditorState(
        value[:first] + new_selected + value[last:],
        first,
        first + len(new_selected),
    )


def handle_key(state: EditorState, event: KeyEvent, language: str) -> EditorState | None:
    """Apply the shortcut bound to ``event``; None means the key is not handled."""
    if event.key == "Tab":
        return outdent(state) if event.shift else indent(state)
    if event.key == "Enter":
        return newline(state)
    if (event.ctrl or event.meta) and event.key == "/":
        return toggle_comment(state, language)
    return None
