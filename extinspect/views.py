"""Text content of the interactive screens: menu, analyzer and browsers."""

from __future__ import annotations

import enum
import stat
import time

from .analyzer import Filesystem, FilesystemError
from .utils import format_value, fs_type_string

_BYTES_PER_ROW = 16
_MAX_DATA_ROWS = 10
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class UIMode(enum.Enum):
    """Screens the interface can show."""

    MENU = 0
    ANALYZER = 1
    BLOCK_BROWSER = 2
    INODE_BROWSER = 3
    BINARY_EDITOR = 4


_HELP_BARS = {
    UIMode.MENU: "F1:Help | 1:Analyzer | 2:Block Browser | 3:Inode Browser | Q:Quit",
    UIMode.ANALYZER: "F1:Help | ESC:Back | G:Group | Q:Quit",
    UIMode.BLOCK_BROWSER: (
        "F1:Help | ESC:Back | ARROWS:Navigate | E:Edit Block | G:Go to Block | Q:Quit"
    ),
    UIMode.INODE_BROWSER: (
        "F1:Help | ESC:Back | ARROWS:Navigate | E:Edit Inode | G:Go to Inode | Q:Quit"
    ),
    UIMode.BINARY_EDITOR: (
        "F1:Help | ESC:Back | ARROWS:Move | TAB:Edit Mode | S:Save | Q:Quit"
    ),
}

_DETAILED_HELP = (
    "EXT Filesystem Editor Help",
    "=========================",
    "",
    "General Navigation:",
    "  - Arrow keys: Move cursor",
    "  - ESC: Return to previous menu",
    "  - Q: Quit the program",
    "",
    "Editable Structures:",
    "  1. Superblock (Block 1)",
    "  2. Group Descriptors (Block 2)",
    "  3. Block Bitmaps (Per group)",
    "  4. Inode Bitmaps (Per group)",
    "  5. Inode Table (Per group)",
    "  6. Data Blocks",
    "",
    "Editing Instructions:",
    "  - TAB: Toggle edit mode",
    "  - In edit mode, type hex digits (0-9, A-F)",
    "  - Each key press modifies a nibble (4 bits)",
    "  - Cursor moves automatically after edit",
    "",
    "Saving Changes:",
    "  1. Make your changes in the editor",
    "  2. Press S to save changes",
    "  3. Changes are written immediately to disk",
    "  - WARNING: Changes can corrupt filesystem!",
    "",
    "Press any key to return...",
)

_MENU_TITLE = "EXT Filesystem Analyzer and Editor"
_MENU_DIVIDER = "================================="
_MENU_ITEMS = (
    "1. Filesystem Analyzer",
    "2. Block Browser",
    "3. Inode Browser",
    "4. Edit Superblock",
    "",
    "Q. Quit",
)

_FILE_TYPES = (
    (stat.S_ISREG, "Regular File"),
    (stat.S_ISDIR, "Directory"),
    (stat.S_ISLNK, "Symbolic Link"),
    (stat.S_ISCHR, "Character Device"),
    (stat.S_ISBLK, "Block Device"),
    (stat.S_ISFIFO, "FIFO"),
    (stat.S_ISSOCK, "Socket"),
)


def help_bar(mode) -> str:
    """One-line key summary shown at the bottom of the screen for ``mode``."""
    return _HELP_BARS[UIMode(mode)]


def detailed_help_lines() -> list[str]:
    """Lines of the full help screen."""
    return list(_DETAILED_HELP)


def menu_lines(fs: Filesystem) -> list[str]:
    """Lines of the main menu, from row 0; each non-empty line is to be centred.

    Menu items are padded to a common width so that centring them keeps
    them aligned as a block.
    """
    width = max(len(item) for item in _MENU_ITEMS)
    lines = [
        "",
        "",
        _MENU_TITLE,
        _MENU_DIVIDER,
        "",
        f"Device: {fs.device_path}",
        f"Type: {fs_type_string(fs.sb)}",
        "",
    ]
    lines.extend(item.ljust(width) if item else "" for item in _MENU_ITEMS)
    return lines


def fs_info_lines(fs: Filesystem, group: int) -> list[str]:
    """Lines of the analyzer screen: filesystem summary and one block group."""
    sb = fs.sb
    lines = [
        "Filesystem Information:",
        "======================",
        "",
        f"  Filesystem Type: {fs_type_string(sb)}",
        f"  Filesystem Size: {format_value(sb.s_blocks_count * fs.block_size, True)}",
        f"  Block Size: {fs.block_size} bytes",
        f"  Inode Size: {sb.s_inode_size} bytes",
        f"  Blocks Count: {sb.s_blocks_count}",
        f"  Free Blocks: {sb.s_free_blocks_count}",
        f"  Inodes Count: {sb.s_inodes_count}",
        f"  Free Inodes: {sb.s_free_inodes_count}",
        f"  Block Groups: {fs.groups_count}",
        f"  Blocks Per Group: {fs.blocks_per_group}",
        f"  Inodes Per Group: {fs.inodes_per_group}",
        "",
        f"Block Group #{group} Information:",
        "=============================",
    ]
    if 0 <= group < fs.groups_count:
        gd = fs.group_desc[group]
        lines.extend(
            [
                f"  Block Bitmap: {gd.bg_block_bitmap}",
                f"  Inode Bitmap: {gd.bg_inode_bitmap}",
                f"  Inode Table: {gd.bg_inode_table}",
                f"  Free Blocks Count: {gd.bg_free_blocks_count}",
                f"  Free Inodes Count: {gd.bg_free_inodes_count}",
                f"  Used Directories Count: {gd.bg_used_dirs_count}",
            ]
        )
    else:
        lines.append("  Invalid block group number")
    return lines


def file_type_name(mode: int) -> str:
    """Human name of the file type encoded in an inode mode."""
    return next((name for test, name in _FILE_TYPES if test(mode)), "Unknown")


def classify_block(fs: Filesystem, block: int) -> str:
    """Describe what the filesystem keeps in block ``block``."""
    if block == 0:
        return "Reserved (Block 0)"
    if block == 1:
        return "Superblock"
    if 1 <= block < 1 + fs.groups_count:
        return "Group Descriptor"
    table_blocks = -(-(fs.inodes_per_group * fs.sb.s_inode_size) // fs.block_size)
    for index, gd in enumerate(fs.group_desc):
        if block == gd.bg_block_bitmap:
            return f"Block Bitmap (Group {index})"
        if block == gd.bg_inode_bitmap:
            return f"Inode Bitmap (Group {index})"
        if gd.bg_inode_table <= block < gd.bg_inode_table + table_blocks:
            return f"Inode Table (Group {index})"
    return "Regular Data Block"


def _printable(byte: int) -> str:
    return chr(byte) if 0x20 <= byte < 0x7F else "."


def _dump_rows(data: bytes, block_size: int) -> list[str]:
    if block_size < _MAX_DATA_ROWS * _BYTES_PER_ROW:
        rows = block_size // _BYTES_PER_ROW
    else:
        rows = _MAX_DATA_ROWS
    lines = []
    for row in range(rows):
        start = row * _BYTES_PER_ROW
        chunk = data[start : start + _BYTES_PER_ROW]
        hex_part = "".join(f"{byte:02X} " for byte in chunk)
        hex_part += "   " * (_BYTES_PER_ROW - len(chunk))
        text_part = "".join(_printable(byte) for byte in chunk)
        text_part += " " * (_BYTES_PER_ROW - len(chunk))
        lines.append(f"{start:04X}: {hex_part} | {text_part}")
    return lines


def block_browser_lines(fs: Filesystem, block: int) -> list[str]:
    """Lines of the block browser for block ``block``."""
    allocated = fs.is_block_allocated(block)
    group, in_group = divmod(block, fs.blocks_per_group)
    lines = [
        f"Block Browser - Block {block} of {fs.sb.s_blocks_count - 1}",
        "===============================",
        "",
        f"Block Status: {'Allocated' if allocated else 'Free'}",
        f"Block Type: {classify_block(fs, block)}",
        f"Block Size: {fs.block_size} bytes",
        f"Block Group: {group}",
        f"Block in Group: {in_group}",
        "",
    ]
    try:
        data = fs.read_block(block)
    except FilesystemError:
        lines.append("Error reading block data")
        return lines
    lines.append("Block Data (first 256 bytes):")
    lines.extend(_dump_rows(data, fs.block_size))
    return lines


def _format_time(timestamp: int) -> str:
    return time.strftime(_TIME_FORMAT, time.localtime(timestamp))


def inode_browser_lines(fs: Filesystem, inode_num: int) -> list[str]:
    """Lines of the inode browser for inode ``inode_num``."""
    allocated = fs.is_inode_allocated(inode_num)
    lines = [
        f"Inode Browser - Inode {inode_num} of {fs.sb.s_inodes_count - 1}",
        "===============================",
        "",
        f"Inode Status: {'Allocated' if allocated else 'Free'}",
    ]
    try:
        inode = fs.read_inode(inode_num)
    except FilesystemError:
        lines.append("Error reading inode")
        return lines

    lines.extend(
        [
            f"Mode: 0{inode.i_mode:o}",
            f"File Type: {file_type_name(inode.i_mode)}",
            f"Size: {format_value(inode.i_size, True)}",
            f"Links: {inode.i_links_count}",
            f"UID: {inode.i_uid}",
            f"GID: {inode.i_gid}",
            f"Access Time: {_format_time(inode.i_atime)}",
            f"Modify Time: {_format_time(inode.i_mtime)}",
            f"Change Time: {_format_time(inode.i_ctime)}",
            "",
            "Direct Blocks:",
        ]
    )
    lines.extend(f"  [{i}]: {num}" for i, num in enumerate(inode.block[:8]))
    lines.extend(
        [
            "Indirect Blocks:",
            f"  Single: {inode.block[12]}",
            f"  Double: {inode.block[13]}",
            f"  Triple: {inode.block[14]}",
        ]
    )
    return lines