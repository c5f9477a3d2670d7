"""Hex editor over on-disk ext filesystem structures."""

from __future__ import annotations

import curses
import enum

from .analyzer import Filesystem, FilesystemError
from .structures import SUPERBLOCK_OFFSET, GroupDescriptor, Inode, Superblock

_HEX_START = 10
_ASCII_START = _HEX_START + 16 * 3
_HELP_START = _ASCII_START + 16 + 4

_HELP_TEXT = (
    (0, "Navigation:", False),
    (2, "Arrows - Move cursor", False),
    (2, "PgUp/Dn - Scroll", False),
    (None, "", False),
    (0, "Editing:", False),
    (2, "0-9,A-F - Hex input", False),
    (2, "TAB - Toggle edit", False),
    (2, "ESC - Cancel", False),
    (None, "", False),
    (0, "Actions:", False),
    (2, "S - Save changes", False),
    (None, "", False),
    (0, "Warning:", True),
    (2, "Changes written", True),
    (2, "directly to disk!", True),
)

SAVE_OK_MESSAGE = "Changes saved successfully."
SAVE_ERROR_MESSAGE = "Error saving changes!"


class StructureType(enum.Enum):
    """Kinds of on-disk structure the editor can load."""

    SUPERBLOCK = 0
    GROUP_DESC = 1
    INODE = 2
    BLOCK = 3
    BLOCK_BITMAP = 4
    INODE_BITMAP = 5


def _printable(byte: int) -> str:
    return chr(byte) if 0x20 <= byte < 0x7F else "."


def _pair(number: int) -> int:
    try:
        return curses.color_pair(number)
    except curses.error:
        return 0


def _put(screen, y: int, x: int, text: str, attr: int = 0) -> None:
    if y < 0 or x < 0:
        return
    try:
        screen.addstr(y, x, text, attr)
    except curses.error:
        pass


def _key_code(key) -> int:
    if isinstance(key, str):
        return ord(key) if len(key) == 1 else -1
    return key


class Editor:
    """A byte buffer holding one structure, with a cursor and an edit mode."""

    def __init__(self, fs: Filesystem):
        self.fs = fs
        self.current_offset = 0
        self.buffer = bytearray(fs.block_size * 2)
        self.bytes_per_row = 16
        self.view_rows = 16
        self.cursor_x = 0
        self.cursor_y = 0
        self.editing_mode = False
        self.edited_structure: StructureType | None = None
        self.edited_id = 0
        self.message = ""

    @property
    def buffer_size(self) -> int:
        return len(self.buffer)

    def _load(self, data: bytes) -> None:
        self.buffer[: len(data)] = data

    def open_structure(self, kind, ident: int) -> None:
        """Load structure ``kind`` number ``ident`` into the buffer."""
        kind = StructureType(kind)
        fs = self.fs
        self.edited_structure = kind
        self.edited_id = ident
        self.cursor_x = 0
        self.cursor_y = 0
        self.buffer[:] = bytes(self.buffer_size)

        if kind is StructureType.SUPERBLOCK:
            self.current_offset = SUPERBLOCK_OFFSET
            self._load(fs.sb.to_bytes())
        elif kind is StructureType.GROUP_DESC:
            if ident < 0 or ident >= fs.groups_count:
                raise FilesystemError(f"Group number {ident} out of range")
            self.current_offset = fs.block_size + ident * GroupDescriptor.SIZE
            self._load(fs.group_desc[ident].to_bytes())
        elif kind is StructureType.INODE:
            self._load(fs.read_inode(ident).to_bytes())
        elif kind is StructureType.BLOCK:
            self._load(fs.read_block(ident))
        elif kind is StructureType.BLOCK_BITMAP:
            if ident < 0 or ident >= fs.groups_count:
                raise FilesystemError(f"Group number {ident} out of range")
            self._load(fs.block_bitmap(ident)[: fs.blocks_per_group // 8])
        else:
            if ident < 0 or ident >= fs.groups_count:
                raise FilesystemError(f"Group number {ident} out of range")
            self._load(fs.inode_bitmap(ident)[: fs.inodes_per_group // 8])

    def save_changes(self) -> None:
        """Write the buffer back to the device for structures that support it."""
        kind = self.edited_structure
        if kind is StructureType.SUPERBLOCK:
            self.fs.write_superblock(
                Superblock.from_bytes(self.buffer[: Superblock.SIZE])
            )
        elif kind is StructureType.INODE:
            self.fs.write_inode(
                self.edited_id, Inode.from_bytes(self.buffer[: Inode.SIZE])
            )
        elif kind is StructureType.BLOCK:
            self.fs.write_block(self.edited_id, self.buffer)
        else:
            name = kind.name if kind is not None else "nothing"
            raise FilesystemError(f"Saving is not supported for {name}")

    def move_cursor(self, dx: int, dy: int) -> None:
        """Move the cursor, clamped to the view and to the buffer."""
        new_x = min(max(self.cursor_x + dx, 0), self.bytes_per_row - 1)
        new_y = min(max(self.cursor_y + dy, 0), self.view_rows - 1)
        if new_y * self.bytes_per_row + new_x >= self.buffer_size:
            return
        self.cursor_x = new_x
        self.cursor_y = new_y

    def cursor_index(self) -> int:
        """Index into the buffer of the byte under the cursor."""
        return self.cursor_y * self.bytes_per_row + self.cursor_x

    def set_byte(self, value: int) -> None:
        """Replace the byte under the cursor; ignored outside edit mode."""
        if not self.editing_mode:
            return
        index = self.cursor_index()
        if index < self.buffer_size:
            self.buffer[index] = value

    def view_lines(self) -> list[str]:
        """Text of the visible rows: offset, hex bytes and printable characters."""
        lines = []
        for row in range(self.view_rows):
            base = row * self.bytes_per_row
            cells = range(base, base + self.bytes_per_row)
            hex_part = "".join(
                f"{self.buffer[i]:02x} " if i < self.buffer_size else "   "
                for i in cells
            )
            text_part = "".join(
                _printable(self.buffer[i]) if i < self.buffer_size else " "
                for i in cells
            )
            lines.append(
                f"{self.current_offset + base:08x}: {hex_part}| {text_part}"
            )
        return lines

    def handle_key(self, key) -> bool:
        """Act on a key press; return False when the editor should quit."""
        code = _key_code(key)
        moves = {
            curses.KEY_UP: (0, -1),
            curses.KEY_DOWN: (0, 1),
            curses.KEY_LEFT: (-1, 0),
            curses.KEY_RIGHT: (1, 0),
        }
        if code in moves:
            self.move_cursor(*moves[code])
        elif code == ord("\t"):
            self.editing_mode = not self.editing_mode
        elif code in (ord("s"), ord("S")):
            try:
                self.save_changes()
            except (FilesystemError, ValueError):
                self.message = SAVE_ERROR_MESSAGE
            else:
                self.message = SAVE_OK_MESSAGE
        elif code in (ord("q"), ord("Q")):
            return False
        elif self.editing_mode and 0 <= code < 0x110000:
            char = chr(code)
            if char in "0123456789abcdefABCDEF":
                index = self.cursor_index()
                self.buffer[index] = (self.buffer[index] & 0x0F) | (int(char, 16) << 4)
                self.move_cursor(1, 0)
        return True

    def render(self, screen) -> None:
        """Draw the editor on a curses window."""
        screen.erase()
        max_y, max_x = screen.getmaxyx()

        _put(
            screen, 0, 0,
            f"Binary Editor - Offset: 0x{self.current_offset:08x}", _pair(1),
        )

        for row in range(self.view_rows):
            y = row + 2
            base = row * self.bytes_per_row
            _put(screen, y, 0, f"{self.current_offset + base:08x}: ")
            _put(screen, y, _ASCII_START, "| ")
            for col in range(self.bytes_per_row):
                index = base + col
                selected = col == self.cursor_x and row == self.cursor_y
                attr = _pair(5) if selected else 0
                if index >= self.buffer_size:
                    _put(screen, y, _HEX_START + col * 3, "   ")
                    _put(screen, y, _ASCII_START + 2 + col, " ")
                    continue
                byte = self.buffer[index]
                _put(screen, y, _HEX_START + col * 3, f"{byte:02x} ", attr)
                _put(screen, y, _ASCII_START + 2 + col, _printable(byte), attr)

        if self.editing_mode and _HELP_START + 20 < max_x:
            vline = getattr(curses, "ACS_VLINE", ord("|"))
            for y in range(1, max_y - 2):
                try:
                    screen.addch(y, _HELP_START - 2, vline)
                except curses.error:
                    pass
            _put(screen, 1, _HELP_START, "EDIT MODE HELP", _pair(3) | curses.A_BOLD)
            line = 3
            for indent, text, warning in _HELP_TEXT:
                if indent is not None:
                    _put(screen, line, _HELP_START + indent, text,
                         _pair(4) if warning else 0)
                line += 1

        if self.message:
            _put(screen, self.view_rows + 4, 0, self.message)

        mode = "EDIT MODE" if self.editing_mode else "VIEW MODE"
        _put(screen, max_y - 2, 0, f"{mode:<80}", _pair(2))
        screen.refresh()