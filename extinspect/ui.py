"""Interactive curses front end for browsing and editing an ext filesystem."""

from __future__ import annotations

import curses
import re
import sys

from .analyzer import Filesystem, FilesystemError
from .editor import Editor, StructureType
from .views import (
    UIMode,
    block_browser_lines,
    detailed_help_lines,
    fs_info_lines,
    help_bar,
    inode_browser_lines,
    menu_lines,
)

_ESC = 27
_PROMPT_LENGTH = 31
_PROGRAM = "extinspect"


def _code(key) -> int:
    if isinstance(key, str):
        return ord(key) if len(key) == 1 else -1
    return key


def _pair(number: int) -> int:
    try:
        return curses.color_pair(number)
    except curses.error:
        return 0


def _leading_int(text: str) -> int | None:
    """Leading decimal integer of ``text`` (after blanks and a sign), or None."""
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else None


class App:
    """State and key handling of the interactive interface on one screen."""

    def __init__(self, fs: Filesystem, screen):
        self.fs = fs
        self.screen = screen
        self.mode = UIMode.MENU
        self.current_block = 0
        self.current_inode = 1
        self.current_group = 0
        self.editor = Editor(fs)
        self.status_text = ""

    # -- drawing helpers -------------------------------------------------

    def _size(self) -> tuple[int, int]:
        return self.screen.getmaxyx()

    def _put(self, y: int, x: int, text: str, attr: int = 0) -> None:
        max_y, max_x = self._size()
        if y < 0 or x < 0 or y >= max_y or x >= max_x:
            return
        text = text[: max(max_x - x - 1, 0)] if y == max_y - 1 else text[: max_x - x]
        if not text:
            return
        try:
            self.screen.addstr(y, x, text, attr)
        except curses.error:
            pass

    def _draw_status(self) -> None:
        max_y, max_x = self._size()
        width = max(max_x - 1, 0)
        self._put(max_y - 2, 0, self.status_text.ljust(width)[:width], _pair(2))

    def _draw_help(self) -> None:
        max_y, max_x = self._size()
        width = max(max_x - 1, 0)
        self._put(max_y - 1, 0, help_bar(self.mode).ljust(width)[:width], _pair(1))

    def _main_lines(self) -> list[tuple[int, str]]:
        """Rows of the main area as (x, text) pairs."""
        _, max_x = self._size()
        if self.mode is UIMode.MENU:
            return [
                (max((max_x - len(line)) // 2, 0), line) for line in menu_lines(self.fs)
            ]
        if self.mode is UIMode.ANALYZER:
            lines = fs_info_lines(self.fs, self.current_group)
        elif self.mode is UIMode.BLOCK_BROWSER:
            lines = block_browser_lines(self.fs, self.current_block)
        else:
            lines = inode_browser_lines(self.fs, self.current_inode)
        return [(0, line) for line in lines]

    # -- public interface ------------------------------------------------

    def status(self, message: str) -> None:
        """Show ``message`` on the status line."""
        self.status_text = message
        self._draw_status()
        self.screen.refresh()

    def set_mode(self, mode) -> None:
        """Switch to screen ``mode`` and update the status and help lines."""
        self.mode = UIMode(mode)
        self.screen.erase()
        device = self.fs.device_path
        messages = {
            UIMode.MENU: f"EXT Filesystem Analyzer - {device}",
            UIMode.ANALYZER: f"Filesystem Analyzer - {device}",
            UIMode.BLOCK_BROWSER: f"Block Browser - Block {self.current_block}",
            UIMode.INODE_BROWSER: f"Inode Browser - Inode {self.current_inode}",
            UIMode.BINARY_EDITOR: "Binary Editor",
        }
        self.status(messages[self.mode])
        self._draw_help()
        self.screen.refresh()

    def prompt(self, text: str) -> str | None:
        """Ask for a line of input on the status line; None when it is empty."""
        self.status(text)
        max_y, max_x = self._size()
        try:
            curses.echo()
            curses.curs_set(1)
        except curses.error:
            pass
        try:
            raw = self.screen.getstr(max_y - 2, min(len(text), max(max_x - 1, 0)),
                                     _PROMPT_LENGTH)
        finally:
            try:
                curses.noecho()
                curses.curs_set(0)
            except curses.error:
                pass
        answer = raw.decode(errors="replace") if isinstance(raw, bytes) else str(raw)
        self.status("")
        return answer or None

    def show_error(self, message: str) -> None:
        """Show ``message`` on the status line and wait for a key."""
        self.status(message)
        self.screen.getch()

    def draw(self) -> None:
        """Draw the current screen."""
        if self.mode is UIMode.BINARY_EDITOR:
            self.editor.render(self.screen)
        else:
            self.screen.erase()
            max_y, _ = self._size()
            for y, (x, line) in enumerate(self._main_lines()[: max(max_y - 2, 0)]):
                if line:
                    self._put(y, x, line)
            self._draw_status()
        self._draw_help()
        self.screen.refresh()

    def _show_detailed_help(self) -> None:
        self.screen.erase()
        max_y, _ = self._size()
        for y, line in enumerate(detailed_help_lines()[: max(max_y - 2, 0)]):
            if line:
                self._put(y, 0, line)
        self.screen.refresh()
        self.screen.getch()

    def handle_key(self, key) -> bool:
        """Act on a key press; return False when the program should quit."""
        code = _code(key)
        if code == curses.KEY_F1:
            self._show_detailed_help()
            return True
        handlers = {
            UIMode.MENU: self._menu_key,
            UIMode.ANALYZER: self._analyzer_key,
            UIMode.BLOCK_BROWSER: self._block_key,
            UIMode.INODE_BROWSER: self._inode_key,
            UIMode.BINARY_EDITOR: self._editor_key,
        }
        return handlers[self.mode](code)

    def run(self) -> None:
        """Main loop: draw, read a key, act, until asked to quit."""
        self.set_mode(UIMode.MENU)
        running = True
        while running:
            self.draw()
            running = self.handle_key(self.screen.getch())

    # -- per-mode key handling -------------------------------------------

    def _open_editor(self, kind: StructureType, ident: int) -> None:
        self.set_mode(UIMode.BINARY_EDITOR)
        try:
            self.editor.open_structure(kind, ident)
        except FilesystemError as exc:
            self.status(str(exc))

    def _menu_key(self, code: int) -> bool:
        if code == ord("1"):
            self.set_mode(UIMode.ANALYZER)
        elif code == ord("2"):
            self.set_mode(UIMode.BLOCK_BROWSER)
        elif code == ord("3"):
            self.set_mode(UIMode.INODE_BROWSER)
        elif code == ord("4"):
            self._open_editor(StructureType.SUPERBLOCK, 0)
        elif code in (ord("q"), ord("Q")):
            return False
        return True

    def _analyzer_key(self, code: int) -> bool:
        if code == _ESC:
            self.set_mode(UIMode.MENU)
        elif code in (ord("g"), ord("G")):
            answer = self.prompt("Enter group number: ")
            if answer is not None:
                group = _leading_int(answer)
                if group is not None and 0 <= group < self.fs.groups_count:
                    self.current_group = group
        elif code in (ord("q"), ord("Q")):
            return False
        return True

    def _go_block(self, block: int) -> None:
        self.current_block = block
        self.status(f"Block Browser - Block {block}")

    def _block_key(self, code: int) -> bool:
        count = self.fs.sb.s_blocks_count
        block = self.current_block
        if code == _ESC:
            self.set_mode(UIMode.MENU)
        elif code == curses.KEY_LEFT:
            if block > 0:
                self._go_block(block - 1)
        elif code == curses.KEY_RIGHT:
            if block < count - 1:
                self._go_block(block + 1)
        elif code == curses.KEY_UP:
            if block >= 10:
                self._go_block(block - 10)
        elif code == curses.KEY_DOWN:
            if block + 10 < count:
                self._go_block(block + 10)
        elif code in (ord("e"), ord("E")):
            self._open_editor(StructureType.BLOCK, block)
        elif code in (ord("g"), ord("G")):
            answer = self.prompt("Enter block number: ")
            if answer is not None:
                target = _leading_int(answer) or 0
                if 0 <= target < count:
                    self._go_block(target)
                else:
                    self.show_error("Invalid block number")
        elif code in (ord("q"), ord("Q")):
            return False
        return True

    def _go_inode(self, inode: int) -> None:
        self.current_inode = inode
        self.status(f"Inode Browser - Inode {inode}")

    def _inode_key(self, code: int) -> bool:
        count = self.fs.sb.s_inodes_count
        inode = self.current_inode
        if code == _ESC:
            self.set_mode(UIMode.MENU)
        elif code == curses.KEY_LEFT:
            if inode > 1:
                self._go_inode(inode - 1)
        elif code == curses.KEY_RIGHT:
            if inode < count - 1:
                self._go_inode(inode + 1)
        elif code == curses.KEY_UP:
            if inode > 10:
                self._go_inode(inode - 10)
        elif code == curses.KEY_DOWN:
            if inode + 10 < count:
                self._go_inode(inode + 10)
        elif code in (ord("e"), ord("E")):
            self._open_editor(StructureType.INODE, inode)
        elif code in (ord("g"), ord("G")):
            answer = self.prompt("Enter inode number: ")
            if answer is not None:
                target = _leading_int(answer) or 0
                if 0 < target < count:
                    self._go_inode(target)
                else:
                    self.show_error("Invalid inode number")
        elif code in (ord("q"), ord("Q")):
            return False
        return True

    def _editor_key(self, code: int) -> bool:
        if code == _ESC:
            self.set_mode(UIMode.MENU)
            return True
        if code in (ord("q"), ord("Q")):
            return False
        return self.editor.handle_key(code)


def _print_usage() -> None:
    print(f"Usage: {_PROGRAM} <device>")
    print()
    print("Examples:")
    print(f"  {_PROGRAM} /dev/sda1           # Open interactive UI for /dev/sda1")


def _session(stdscr, fs: Filesystem) -> None:
    curses.raw()
    curses.noecho()
    stdscr.keypad(True)
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    if curses.has_colors():
        for number, fg, bg in (
            (1, curses.COLOR_WHITE, curses.COLOR_BLUE),
            (2, curses.COLOR_BLACK, curses.COLOR_WHITE),
            (3, curses.COLOR_GREEN, curses.COLOR_BLACK),
            (4, curses.COLOR_RED, curses.COLOR_BLACK),
            (5, curses.COLOR_YELLOW, curses.COLOR_BLACK),
            (6, curses.COLOR_CYAN, curses.COLOR_BLACK),
            (7, curses.COLOR_WHITE, curses.COLOR_RED),
        ):
            curses.init_pair(number, fg, bg)
    stdscr.refresh()
    App(fs, stdscr).run()


def main(argv=None) -> int:
    """Open the device named on the command line and start the interface."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("Error: Device path not specified", file=sys.stderr)
        _print_usage()
        return 1

    try:
        fs = Filesystem(args[0])
    except FilesystemError as exc:
        print(exc, file=sys.stderr)
        print("Error: Failed to initialize filesystem analyzer", file=sys.stderr)
        return 1

    try:
        curses.wrapper(_session, fs)
    finally:
        fs.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())