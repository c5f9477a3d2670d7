"""Formatting and bitmap helpers for ext filesystem structures."""

from __future__ import annotations

import stat

from .structures import COMPAT_HAS_JOURNAL, GroupDescriptor, Inode, Superblock

_UNITS = ("B", "KB", "MB", "GB", "TB")
_S_ISVTX = 0o1000


def format_value(value: int, is_size: bool) -> str:
    """Render ``value`` plainly, or as a human-readable size when ``is_size``."""
    if not is_size:
        return str(value)
    size = float(value)
    unit = 0
    while size >= 1024.0 and unit < len(_UNITS) - 1:
        size /= 1024.0
        unit += 1
    if unit == 0:
        return f"{value} {_UNITS[0]}"
    return f"{size:.2f} {_UNITS[unit]}"


def check_bitmap_bit(bitmap, bit_num: int) -> bool:
    """Return whether bit ``bit_num`` (LSB first within each byte) is set."""
    byte_index, bit_offset = divmod(bit_num, 8)
    return bool(bitmap[byte_index] & (1 << bit_offset))


def set_bitmap_bit(bitmap: bytearray, bit_num: int) -> None:
    """Set bit ``bit_num`` of ``bitmap`` in place."""
    byte_index, bit_offset = divmod(bit_num, 8)
    bitmap[byte_index] |= 1 << bit_offset


def clear_bitmap_bit(bitmap: bytearray, bit_num: int) -> None:
    """Clear bit ``bit_num`` of ``bitmap`` in place."""
    byte_index, bit_offset = divmod(bit_num, 8)
    bitmap[byte_index] &= ~(1 << bit_offset) & 0xFF


_TYPE_CHARS = (
    (stat.S_ISREG, "-"),
    (stat.S_ISDIR, "d"),
    (stat.S_ISLNK, "l"),
    (stat.S_ISCHR, "c"),
    (stat.S_ISBLK, "b"),
    (stat.S_ISFIFO, "p"),
    (stat.S_ISSOCK, "s"),
)

_PERMISSIONS = (
    (stat.S_IRUSR, "r"),
    (stat.S_IWUSR, "w"),
    (stat.S_IXUSR, "x"),
    (stat.S_IRGRP, "r"),
    (stat.S_IWGRP, "w"),
    (stat.S_IXGRP, "x"),
    (stat.S_IROTH, "r"),
    (stat.S_IWOTH, "w"),
    (stat.S_IXOTH, "x"),
)


def mode_string(mode: int) -> str:
    """Render an inode mode as an ``ls -l`` style string."""
    type_char = next((ch for test, ch in _TYPE_CHARS if test(mode)), "-")
    chars = [type_char] + [ch if mode & bit else "-" for bit, ch in _PERMISSIONS]

    for bit, pos, set_char in (
        (stat.S_ISUID, 3, "s"),
        (stat.S_ISGID, 6, "s"),
        (_S_ISVTX, 9, "t"),
    ):
        if mode & bit:
            chars[pos] = set_char if chars[pos] == "x" else set_char.upper()
    return "".join(chars)


def superblock_to_string(sb: Superblock) -> str:
    """Multi-line description of a superblock."""
    return (
        "Superblock:\n"
        f"  Inodes count: {sb.s_inodes_count}\n"
        f"  Blocks count: {sb.s_blocks_count}\n"
        f"  Reserved blocks count: {sb.s_r_blocks_count}\n"
        f"  Free blocks count: {sb.s_free_blocks_count}\n"
        f"  Free inodes count: {sb.s_free_inodes_count}\n"
        f"  First data block: {sb.s_first_data_block}\n"
        f"  Block size: {sb.block_size()}\n"
        f"  Blocks per group: {sb.s_blocks_per_group}\n"
        f"  Inodes per group: {sb.s_inodes_per_group}\n"
        f"  Mount count: {sb.s_mnt_count}\n"
        f"  Maximum mount count: {sb.s_max_mnt_count & 0xFFFFFFFF}\n"
        f"  Magic signature: 0x{sb.s_magic:x}\n"
        f"  Filesystem state: {sb.s_state}\n"
        f"  Error behavior: {sb.s_errors}\n"
        f"  Minor revision level: {sb.s_minor_rev_level}\n"
        f"  Last check time: {sb.s_lastcheck}\n"
        f"  Check interval: {sb.s_checkinterval}\n"
        f"  Creator OS: {sb.s_creator_os}\n"
        f"  Revision level: {sb.s_rev_level}\n"
        f"  Reserved blocks UID: {sb.s_def_resuid}\n"
        f"  Reserved blocks GID: {sb.s_def_resgid}\n"
    )


def group_desc_to_string(gd: GroupDescriptor) -> str:
    """Multi-line description of a group descriptor."""
    return (
        "Group Descriptor:\n"
        f"  Block bitmap: {gd.bg_block_bitmap}\n"
        f"  Inode bitmap: {gd.bg_inode_bitmap}\n"
        f"  Inode table: {gd.bg_inode_table}\n"
        f"  Free blocks count: {gd.bg_free_blocks_count}\n"
        f"  Free inodes count: {gd.bg_free_inodes_count}\n"
        f"  Used directories count: {gd.bg_used_dirs_count}\n"
    )


def inode_to_string(inode: Inode) -> str:
    """Multi-line description of an inode."""
    lines = [
        "Inode:",
        f"  Mode: {mode_string(inode.i_mode)} (0{inode.i_mode & 0xFFF:o})",
        f"  Owner: {inode.i_uid}",
        f"  Size: {inode.i_size}",
        f"  Access time: {inode.i_atime}",
        f"  Creation time: {inode.i_ctime}",
        f"  Modification time: {inode.i_mtime}",
        f"  Deletion time: {inode.i_dtime}",
        f"  Links count: {inode.i_links_count}",
        f"  Blocks count: {inode.i_blocks}",
        f"  Flags: 0x{inode.i_flags:x}",
        "  Direct blocks:",
    ]
    lines.extend(f"    [{i}]: {num}" for i, num in enumerate(inode.block[:12]))
    lines.append(f"  Singly-indirect block: {inode.block[12]}")
    lines.append(f"  Doubly-indirect block: {inode.block[13]}")
    lines.append(f"  Triply-indirect block: {inode.block[14]}")
    return "\n".join(lines) + "\n"


def fs_type_string(sb: Superblock) -> str:
    """Return "ext4", "ext3" or "ext2" according to the superblock features."""
    if sb.is_64bit():
        return "ext4"
    if sb.s_feature_compat & COMPAT_HAS_JOURNAL:
        return "ext3"
    return "ext2"