"""On-disk ext2/ext3/ext4 structures: superblock, group descriptor and inode."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, ClassVar

SUPERBLOCK_OFFSET = 1024
EXT2_SUPER_MAGIC = 0xEF53

COMPAT_HAS_JOURNAL = 0x0004
COMPAT_DIR_INDEX = 0x0020
INCOMPAT_RECOVER = 0x0004
INCOMPAT_JOURNAL_DEV = 0x0008
INCOMPAT_64BIT = 0x0080
INCOMPAT_FLEX_BG = 0x0200

N_BLOCKS = 15

_Layout = tuple[tuple[str, int, str], ...]


def _parse(cls: Any, data) -> Any:
    """Build a record of type ``cls`` from the first ``cls.SIZE`` bytes of ``data``."""
    data = bytes(data)
    if len(data) < cls.SIZE:
        raise ValueError(f"{cls.__name__} needs {cls.SIZE} bytes, got {len(data)}")
    raw = data[: cls.SIZE]
    values = {}
    for name, offset, fmt in cls._LAYOUT:
        unpacked = struct.unpack_from("<" + fmt, raw, offset)
        values[name] = unpacked[0] if len(unpacked) == 1 else tuple(unpacked)
    return cls(**values, raw=raw)


def _serialise(record: Any) -> bytes:
    """Pack a record, keeping bytes of fields that are not modelled."""
    size = record.SIZE
    buf = bytearray(record.raw[:size].ljust(size, b"\0"))
    for name, offset, fmt in record._LAYOUT:
        value = getattr(record, name)
        items = tuple(value) if isinstance(value, (tuple, list)) else (value,)
        try:
            struct.pack_into("<" + fmt, buf, offset, *items)
        except struct.error as exc:
            raise ValueError(f"field {name}: {exc}") from exc
    return bytes(buf)


@dataclass
class Superblock:
    """The ext2 superblock, stored 1024 bytes into the device."""

    SIZE: ClassVar[int] = 1024
    _LAYOUT: ClassVar[_Layout] = (
        ("s_inodes_count", 0, "I"),
        ("s_blocks_count", 4, "I"),
        ("s_r_blocks_count", 8, "I"),
        ("s_free_blocks_count", 12, "I"),
        ("s_free_inodes_count", 16, "I"),
        ("s_first_data_block", 20, "I"),
        ("s_log_block_size", 24, "I"),
        ("s_log_cluster_size", 28, "I"),
        ("s_blocks_per_group", 32, "I"),
        ("s_clusters_per_group", 36, "I"),
        ("s_inodes_per_group", 40, "I"),
        ("s_mtime", 44, "I"),
        ("s_wtime", 48, "I"),
        ("s_mnt_count", 52, "H"),
        ("s_max_mnt_count", 54, "h"),
        ("s_magic", 56, "H"),
        ("s_state", 58, "H"),
        ("s_errors", 60, "H"),
        ("s_minor_rev_level", 62, "H"),
        ("s_lastcheck", 64, "I"),
        ("s_checkinterval", 68, "I"),
        ("s_creator_os", 72, "I"),
        ("s_rev_level", 76, "I"),
        ("s_def_resuid", 80, "H"),
        ("s_def_resgid", 82, "H"),
        ("s_first_ino", 84, "I"),
        ("s_inode_size", 88, "H"),
        ("s_block_group_nr", 90, "H"),
        ("s_feature_compat", 92, "I"),
        ("s_feature_incompat", 96, "I"),
        ("s_feature_ro_compat", 100, "I"),
    )

    s_inodes_count: int = 0
    s_blocks_count: int = 0
    s_r_blocks_count: int = 0
    s_free_blocks_count: int = 0
    s_free_inodes_count: int = 0
    s_first_data_block: int = 0
    s_log_block_size: int = 0
    s_log_cluster_size: int = 0
    s_blocks_per_group: int = 0
    s_clusters_per_group: int = 0
    s_inodes_per_group: int = 0
    s_mtime: int = 0
    s_wtime: int = 0
    s_mnt_count: int = 0
    s_max_mnt_count: int = 0
    s_magic: int = 0
    s_state: int = 0
    s_errors: int = 0
    s_minor_rev_level: int = 0
    s_lastcheck: int = 0
    s_checkinterval: int = 0
    s_creator_os: int = 0
    s_rev_level: int = 0
    s_def_resuid: int = 0
    s_def_resgid: int = 0
    s_first_ino: int = 0
    s_inode_size: int = 0
    s_block_group_nr: int = 0
    s_feature_compat: int = 0
    s_feature_incompat: int = 0
    s_feature_ro_compat: int = 0
    raw: bytes = field(default=b"", repr=False, compare=False)

    @classmethod
    def from_bytes(cls, data) -> "Superblock":
        """Parse a superblock from the first 1024 bytes of ``data``."""
        return _parse(cls, data)

    def to_bytes(self) -> bytes:
        """Serialise the superblock, keeping bytes of fields that are not modelled."""
        return _serialise(self)

    def block_size(self) -> int:
        """Block size in bytes."""
        return 1024 << self.s_log_block_size

    def is_64bit(self) -> bool:
        """Whether the 64-bit incompat feature is set (treated as ext4)."""
        return bool(self.s_feature_incompat & INCOMPAT_64BIT)


@dataclass
class GroupDescriptor:
    """A 32-byte block group descriptor."""

    SIZE: ClassVar[int] = 32
    _LAYOUT: ClassVar[_Layout] = (
        ("bg_block_bitmap", 0, "I"),
        ("bg_inode_bitmap", 4, "I"),
        ("bg_inode_table", 8, "I"),
        ("bg_free_blocks_count", 12, "H"),
        ("bg_free_inodes_count", 14, "H"),
        ("bg_used_dirs_count", 16, "H"),
        ("bg_flags", 18, "H"),
    )

    bg_block_bitmap: int = 0
    bg_inode_bitmap: int = 0
    bg_inode_table: int = 0
    bg_free_blocks_count: int = 0
    bg_free_inodes_count: int = 0
    bg_used_dirs_count: int = 0
    bg_flags: int = 0
    raw: bytes = field(default=b"", repr=False, compare=False)

    @classmethod
    def from_bytes(cls, data) -> "GroupDescriptor":
        """Parse a group descriptor from the first 32 bytes of ``data``."""
        return _parse(cls, data)

    def to_bytes(self) -> bytes:
        """Serialise the descriptor, keeping bytes of fields that are not modelled."""
        return _serialise(self)


@dataclass
class Inode:
    """The 128-byte base inode record."""

    SIZE: ClassVar[int] = 128
    _LAYOUT: ClassVar[_Layout] = (
        ("i_mode", 0, "H"),
        ("i_uid", 2, "H"),
        ("i_size", 4, "I"),
        ("i_atime", 8, "I"),
        ("i_ctime", 12, "I"),
        ("i_mtime", 16, "I"),
        ("i_dtime", 20, "I"),
        ("i_gid", 24, "H"),
        ("i_links_count", 26, "H"),
        ("i_blocks", 28, "I"),
        ("i_flags", 32, "I"),
        ("block", 40, f"{N_BLOCKS}I"),
        ("i_generation", 100, "I"),
        ("i_file_acl", 104, "I"),
        ("i_size_high", 108, "I"),
    )

    i_mode: int = 0
    i_uid: int = 0
    i_size: int = 0
    i_atime: int = 0
    i_ctime: int = 0
    i_mtime: int = 0
    i_dtime: int = 0
    i_gid: int = 0
    i_links_count: int = 0
    i_blocks: int = 0
    i_flags: int = 0
    block: tuple = (0,) * N_BLOCKS
    i_generation: int = 0
    i_file_acl: int = 0
    i_size_high: int = 0
    raw: bytes = field(default=b"", repr=False, compare=False)

    @classmethod
    def from_bytes(cls, data) -> "Inode":
        """Parse an inode from the first 128 bytes of ``data``."""
        return _parse(cls, data)

    def to_bytes(self) -> bytes:
        """Serialise the inode, keeping bytes of fields that are not modelled."""
        return _serialise(self)