import pytest

from extinspect.analyzer import Filesystem, FilesystemError, analyze_filesystem
from extinspect.structures import (
    EXT2_SUPER_MAGIC,
    INCOMPAT_64BIT,
    GroupDescriptor,
    Inode,
    Superblock,
)
from extinspect.utils import format_value

BLOCK_SIZE = 1024
BLOCKS = 64
INODES = 32


def _make_image(path, *, magic=EXT2_SUPER_MAGIC, incompat=0):
    image = bytearray(BLOCK_SIZE * BLOCKS)
    sb = Superblock(
        s_inodes_count=INODES,
        s_blocks_count=BLOCKS,
        s_free_blocks_count=56,
        s_free_inodes_count=30,
        s_first_data_block=1,
        s_log_block_size=0,
        s_blocks_per_group=8192,
        s_inodes_per_group=INODES,
        s_magic=magic,
        s_inode_size=128,
        s_feature_incompat=incompat,
    )
    image[1024:2048] = sb.to_bytes()
    gd = GroupDescriptor(
        bg_block_bitmap=3,
        bg_inode_bitmap=4,
        bg_inode_table=5,
        bg_free_blocks_count=56,
        bg_free_inodes_count=30,
    )
    image[2 * BLOCK_SIZE : 2 * BLOCK_SIZE + GroupDescriptor.SIZE] = gd.to_bytes()
    image[3 * BLOCK_SIZE] = 0xFF  # blocks 1..8 in use
    image[4 * BLOCK_SIZE] = 0x03  # inodes 1 and 2 in use
    path.write_bytes(bytes(image))
    return path


@pytest.fixture
def image(tmp_path):
    return _make_image(tmp_path / "fs.img")


@pytest.fixture
def fs(image):
    with Filesystem(image) as opened:
        yield opened


def test_open_reads_geometry(fs):
    assert fs.block_size == BLOCK_SIZE
    assert fs.groups_count == 1
    assert fs.inodes_per_group == INODES
    assert fs.blocks_per_group == 8192
    assert fs.is_ext4 is False
    assert fs.group_desc[0].bg_inode_table == 5
    assert fs.sb.s_magic == EXT2_SUPER_MAGIC


def test_bad_magic_rejected(tmp_path):
    path = _make_image(tmp_path / "bad.img", magic=0x1234)
    with pytest.raises(FilesystemError, match="Not an ext2"):
        Filesystem(path)


def test_missing_device(tmp_path):
    with pytest.raises(FilesystemError):
        Filesystem(tmp_path / "absent.img")


def test_truncated_device(tmp_path):
    path = tmp_path / "short.img"
    path.write_bytes(b"\0" * 1500)
    with pytest.raises(FilesystemError, match="superblock"):
        Filesystem(path)


def test_block_round_trip(fs):
    payload = bytes(range(256)) * 4
    fs.write_block(10, payload)
    assert fs.read_block(10) == payload


def test_block_write_persists(image):
    payload = b"\xab" * BLOCK_SIZE
    with Filesystem(image) as first:
        first.write_block(20, payload)
    with Filesystem(image) as second:
        assert second.read_block(20) == payload


@pytest.mark.parametrize("block", [0, BLOCKS, BLOCKS + 5])
def test_block_out_of_range(fs, block):
    with pytest.raises(FilesystemError):
        fs.read_block(block)
    with pytest.raises(FilesystemError):
        fs.write_block(block, b"\0" * BLOCK_SIZE)


def test_short_block_data_rejected(fs):
    with pytest.raises(FilesystemError):
        fs.write_block(10, b"\0" * 10)


def test_block_allocation(fs):
    assert fs.is_block_allocated(1) is True
    assert fs.is_block_allocated(8) is True
    assert fs.is_block_allocated(9) is False
    assert fs.is_block_allocated(0) is False
    assert fs.is_block_allocated(BLOCKS) is False


def test_inode_allocation(fs):
    assert fs.is_inode_allocated(1) is True
    assert fs.is_inode_allocated(2) is True
    assert fs.is_inode_allocated(3) is False
    assert fs.is_inode_allocated(0) is False
    assert fs.is_inode_allocated(INODES) is False


def test_inode_round_trip(fs):
    inode = Inode(i_mode=0o100644, i_uid=7, i_size=4096, i_links_count=1,
                  block=tuple(range(15)))
    fs.write_inode(12, inode)
    back = fs.read_inode(12)
    assert back == inode
    assert fs.read_inode(11) == Inode()


def test_last_inode_is_readable(fs):
    assert fs.read_inode(INODES).i_mode == 0


@pytest.mark.parametrize("num", [0, INODES + 1])
def test_inode_out_of_range(fs, num):
    with pytest.raises(FilesystemError):
        fs.read_inode(num)
    with pytest.raises(FilesystemError):
        fs.write_inode(num, Inode())


def test_bitmaps(fs):
    assert fs.block_bitmap(0) == fs.read_block(3)
    assert fs.inode_bitmap(0) == fs.read_block(4)
    assert fs.block_bitmap(0)[0] == 0xFF
    with pytest.raises(FilesystemError):
        fs.block_bitmap(1)
    with pytest.raises(FilesystemError):
        fs.inode_bitmap(-1)


def test_write_superblock_persists(image):
    with Filesystem(image) as first:
        sb = first.sb
        sb.s_mnt_count = 9
        first.write_superblock(sb)
    with Filesystem(image) as second:
        assert second.sb.s_mnt_count == 9
        assert second.sb.s_blocks_count == BLOCKS


def test_closed_filesystem_refuses_io(image):
    fs = Filesystem(image)
    fs.close()
    fs.close()
    with pytest.raises(FilesystemError, match="closed"):
        fs.read_block(5)


def test_64bit_flag_means_ext4(tmp_path):
    path = _make_image(tmp_path / "ext4.img", incompat=INCOMPAT_64BIT)
    with Filesystem(path) as fs:
        assert fs.is_ext4 is True
        report = analyze_filesystem(fs)
    assert "Filesystem type: ext4" in report
    assert "- 64-bit support" in report


def test_report_contents(fs, image):
    report = analyze_filesystem(fs)
    lines = report.splitlines()
    assert lines[0] == f"Filesystem Analysis for {image}"
    assert "Filesystem type: ext2" in lines
    assert f"Block size: {format_value(BLOCK_SIZE, True)}" in lines
    assert f"Total blocks: {BLOCKS}" in lines
    assert f"Total inodes: {INODES}" in lines
    assert "Used space: 12.5%" in lines
    assert "- 64-bit support" not in report
    header_index = lines.index("Block Group Descriptor Table:")
    assert lines[header_index + 1].split() == [
        "Group", "Block", "Bitmap", "Inode", "Bitmap", "Inode", "Table", "Free", "Blocks",
    ]
    assert lines[header_index + 2].split() == ["0", "3", "4", "5", "56"]
    assert report.endswith("\n")