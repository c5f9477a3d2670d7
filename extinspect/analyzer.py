"""Low-level access to an ext2/ext3/ext4 device or image file."""

from __future__ import annotations

import sys

from .structures import (
    COMPAT_DIR_INDEX,
    EXT2_SUPER_MAGIC,
    INCOMPAT_64BIT,
    INCOMPAT_FLEX_BG,
    INCOMPAT_JOURNAL_DEV,
    INCOMPAT_RECOVER,
    SUPERBLOCK_OFFSET,
    GroupDescriptor,
    Inode,
    Superblock,
)
from .utils import check_bitmap_bit, format_value, fs_type_string


class FilesystemError(Exception):
    """Raised when the device cannot be opened, read, written or understood."""


class Filesystem:
    """An open ext filesystem with its superblock and group descriptors loaded."""

    def __init__(self, device_path):
        self.device_path = str(device_path)
        self.read_only = False
        try:
            self._file = open(self.device_path, "r+b", buffering=0)
        except OSError:
            try:
                self._file = open(self.device_path, "rb", buffering=0)
            except OSError as exc:
                raise FilesystemError(f"Failed to open device: {exc}") from exc
            self.read_only = True
            print("Warning: Device opened in read-only mode")

        try:
            self._load()
        except BaseException:
            self.close()
            raise

    def _load(self) -> None:
        raw = self._pread(SUPERBLOCK_OFFSET, Superblock.SIZE)
        if len(raw) != Superblock.SIZE:
            raise FilesystemError("Failed to read superblock")
        sb = Superblock.from_bytes(raw)
        if sb.s_magic != EXT2_SUPER_MAGIC:
            raise FilesystemError(
                "Not an ext2/ext3/ext4 filesystem "
                f"(magic: {sb.s_magic:x}, expected: {EXT2_SUPER_MAGIC:x})"
            )
        if sb.s_blocks_per_group == 0 or sb.s_inodes_per_group == 0:
            raise FilesystemError("Superblock has zero blocks or inodes per group")

        self.sb = sb
        self.block_size = sb.block_size()
        self.inodes_per_group = sb.s_inodes_per_group
        self.blocks_per_group = sb.s_blocks_per_group
        self.groups_count = -(-sb.s_blocks_count // sb.s_blocks_per_group)
        self.is_ext4 = sb.is_64bit()

        table_size = GroupDescriptor.SIZE * self.groups_count
        gdt_block = SUPERBLOCK_OFFSET // self.block_size + 1
        table = self._pread(gdt_block * self.block_size, table_size)
        if len(table) != table_size:
            raise FilesystemError("Failed to read group descriptors")
        self.group_desc = [
            GroupDescriptor.from_bytes(table[start : start + GroupDescriptor.SIZE])
            for start in range(0, table_size, GroupDescriptor.SIZE)
        ]

    def _require_open(self):
        if self._file is None:
            raise FilesystemError("Filesystem is closed")
        return self._file

    def _pread(self, offset: int, size: int) -> bytes:
        handle = self._require_open()
        try:
            handle.seek(offset)
            return handle.read(size) or b""
        except OSError as exc:
            raise FilesystemError(f"Read failed at offset {offset}: {exc}") from exc

    def _pwrite(self, offset: int, data: bytes) -> None:
        handle = self._require_open()
        try:
            handle.seek(offset)
            written = handle.write(data)
            handle.flush()
        except OSError as exc:
            raise FilesystemError(f"Write failed at offset {offset}: {exc}") from exc
        if written != len(data):
            raise FilesystemError(f"Short write at offset {offset}")

    def close(self) -> None:
        """Close the underlying device; safe to call more than once."""
        handle = getattr(self, "_file", None)
        if handle is not None:
            handle.close()
            self._file = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
        return False

    def _check_block(self, block_num: int) -> None:
        if block_num <= 0 or block_num >= self.sb.s_blocks_count:
            raise FilesystemError(f"Block number {block_num} out of range")

    def read_block(self, block_num: int) -> bytes:
        """Return the contents of block ``block_num``."""
        self._check_block(block_num)
        data = self._pread(block_num * self.block_size, self.block_size)
        if len(data) != self.block_size:
            raise FilesystemError("Failed to read block")
        return data

    def write_block(self, block_num: int, data) -> None:
        """Write the first block-size bytes of ``data`` to block ``block_num``."""
        self._check_block(block_num)
        payload = bytes(data[: self.block_size])
        if len(payload) != self.block_size:
            raise FilesystemError(
                f"Block data must hold {self.block_size} bytes, got {len(payload)}"
            )
        self._pwrite(block_num * self.block_size, payload)

    def is_block_allocated(self, block_num: int) -> bool:
        """Whether the block bitmap marks ``block_num`` as in use."""
        if block_num <= 0 or block_num >= self.sb.s_blocks_count:
            return False
        group, position = divmod(block_num - 1, self.blocks_per_group)
        try:
            bitmap = self.read_block(self.group_desc[group].bg_block_bitmap)
        except (FilesystemError, IndexError):
            return False
        return check_bitmap_bit(bitmap, position)

    def is_inode_allocated(self, inode_num: int) -> bool:
        """Whether the inode bitmap marks ``inode_num`` as in use."""
        if inode_num <= 0 or inode_num >= self.sb.s_inodes_count:
            return False
        group, position = divmod(inode_num - 1, self.inodes_per_group)
        try:
            bitmap = self.read_block(self.group_desc[group].bg_inode_bitmap)
        except (FilesystemError, IndexError):
            return False
        return check_bitmap_bit(bitmap, position)

    def _inode_offset(self, inode_num: int) -> int:
        if inode_num <= 0 or inode_num > self.sb.s_inodes_count:
            raise FilesystemError(f"Inode number {inode_num} out of range")
        group, index = divmod(inode_num - 1, self.inodes_per_group)
        try:
            table_block = self.group_desc[group].bg_inode_table
        except IndexError as exc:
            raise FilesystemError(f"Inode {inode_num} lies beyond the last group") from exc
        return table_block * self.block_size + index * self.sb.s_inode_size

    def read_inode(self, inode_num: int) -> Inode:
        """Read inode ``inode_num`` (numbered from 1)."""
        data = self._pread(self._inode_offset(inode_num), Inode.SIZE)
        if len(data) != Inode.SIZE:
            raise FilesystemError("Failed to read inode")
        return Inode.from_bytes(data)

    def write_inode(self, inode_num: int, inode: Inode) -> None:
        """Write ``inode`` into the slot of inode ``inode_num``."""
        offset = self._inode_offset(inode_num)
        self._pwrite(offset, inode.to_bytes())

    def _group_bitmap(self, group_num: int, block_num_of) -> bytes:
        if group_num < 0 or group_num >= self.groups_count:
            raise FilesystemError(f"Group number {group_num} out of range")
        return self.read_block(block_num_of(self.group_desc[group_num]))

    def block_bitmap(self, group_num: int) -> bytes:
        """Return the block bitmap block of group ``group_num``."""
        return self._group_bitmap(group_num, lambda gd: gd.bg_block_bitmap)

    def inode_bitmap(self, group_num: int) -> bytes:
        """Return the inode bitmap block of group ``group_num``."""
        return self._group_bitmap(group_num, lambda gd: gd.bg_inode_bitmap)

    def write_superblock(self, sb: Superblock) -> None:
        """Replace the in-memory superblock and write it to the device."""
        self.sb = sb
        self._pwrite(SUPERBLOCK_OFFSET, sb.to_bytes())


_FEATURES = (
    ("s_feature_compat", COMPAT_DIR_INDEX, "- Directory indexing supported"),
    ("s_feature_incompat", INCOMPAT_JOURNAL_DEV, "- Journal device"),
    ("s_feature_incompat", INCOMPAT_RECOVER, "- Needs recovery"),
    ("s_feature_incompat", INCOMPAT_64BIT, "- 64-bit support"),
    ("s_feature_incompat", INCOMPAT_FLEX_BG, "- Flexible block groups"),
)


def analyze_filesystem(fs: Filesystem) -> str:
    """Return a text report on the filesystem's layout and features."""
    sb = fs.sb
    if sb.s_blocks_count:
        used_percent = 100.0 * (1.0 - sb.s_free_blocks_count / sb.s_blocks_count)
    else:
        used_percent = float("nan")

    lines = [
        f"Filesystem Analysis for {fs.device_path}",
        "==============================================",
        f"Filesystem type: {fs_type_string(sb)}",
        f"Block size: {format_value(fs.block_size, True)}",
        f"Total blocks: {sb.s_blocks_count}",
        f"Free blocks: {sb.s_free_blocks_count}",
        f"Total inodes: {sb.s_inodes_count}",
        f"Free inodes: {sb.s_free_inodes_count}",
        f"Total filesystem size: {format_value(sb.s_blocks_count * fs.block_size, True)}",
        f"Free space: {format_value(sb.s_free_blocks_count * fs.block_size, True)}",
        f"Used space: {used_percent:.1f}%",
        "",
        f"Block Groups: {fs.groups_count}",
        f"Blocks per group: {fs.blocks_per_group}",
        f"Inodes per group: {fs.inodes_per_group}",
        "",
        "Superblock Features:",
    ]
    lines.extend(text for attr, flag, text in _FEATURES if getattr(sb, attr) & flag)
    lines.append("")
    lines.append("Block Group Descriptor Table:")
    lines.append(
        f"{'Group':<5} {'Block Bitmap':<15} {'Inode Bitmap':<15} "
        f"{'Inode Table':<15} {'Free Blocks':<15}"
    )
    lines.extend(
        f"{i:<5} {gd.bg_block_bitmap:<15} {gd.bg_inode_bitmap:<15} "
        f"{gd.bg_inode_table:<15} {gd.bg_free_blocks_count:<15}"
        for i, gd in enumerate(fs.group_desc)
    )
    return "\n".join(lines) + "\n"


def _stderr(message: str) -> None:
    print(message, file=sys.stderr)