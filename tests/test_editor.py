import curses

import pytest

from extinspect.analyzer import Filesystem, FilesystemError
from extinspect.editor import Editor, StructureType
from extinspect.structures import (
    EXT2_SUPER_MAGIC,
    GroupDescriptor,
    Inode,
    Superblock,
)

BLOCK = 1024
BLOCKS = 64


def _make_image(path):
    sb = Superblock(
        s_inodes_count=16,
        s_blocks_count=BLOCKS,
        s_free_blocks_count=50,
        s_free_inodes_count=5,
        s_first_data_block=1,
        s_log_block_size=0,
        s_blocks_per_group=8192,
        s_inodes_per_group=16,
        s_magic=EXT2_SUPER_MAGIC,
        s_inode_size=128,
        s_rev_level=1,
    )
    gd = GroupDescriptor(
        bg_block_bitmap=3,
        bg_inode_bitmap=4,
        bg_inode_table=5,
        bg_free_blocks_count=50,
        bg_free_inodes_count=5,
    )
    image = bytearray(BLOCKS * BLOCK)
    image[1024:2048] = sb.to_bytes()
    image[2048:2048 + GroupDescriptor.SIZE] = gd.to_bytes()
    path.write_bytes(bytes(image))
    return path


@pytest.fixture
def image(tmp_path):
    return _make_image(tmp_path / "fs.img")


@pytest.fixture
def fs(image):
    with Filesystem(image) as opened:
        yield opened


@pytest.fixture
def editor(fs):
    return Editor(fs)


class FakeScreen:
    def __init__(self, rows=40, cols=120):
        self.rows = rows
        self.cols = cols
        self.texts = []
        self.chars = []
        self.erased = 0
        self.refreshed = 0

    def erase(self):
        self.erased += 1

    def getmaxyx(self):
        return self.rows, self.cols

    def addstr(self, y, x, text, attr=0):
        self.texts.append((y, x, text))

    def addch(self, y, x, ch, attr=0):
        self.chars.append((y, x, ch))

    def refresh(self):
        self.refreshed += 1

    def strings(self):
        return [text for _, _, text in self.texts]


def test_initial_state(editor):
    assert editor.buffer_size == 2 * BLOCK
    assert editor.bytes_per_row == 16
    assert editor.view_rows == 16
    assert (editor.cursor_x, editor.cursor_y) == (0, 0)
    assert editor.editing_mode is False


def test_open_superblock(editor, fs):
    editor.open_structure(StructureType.SUPERBLOCK, 0)
    assert editor.current_offset == 1024
    assert bytes(editor.buffer[:Superblock.SIZE]) == fs.sb.to_bytes()
    assert editor.buffer[56:58] == b"\x53\xef"
    assert not any(editor.buffer[Superblock.SIZE:])


def test_open_group_descriptor(editor, fs):
    editor.open_structure(StructureType.GROUP_DESC, 0)
    assert editor.current_offset == fs.block_size
    assert bytes(editor.buffer[:GroupDescriptor.SIZE]) == fs.group_desc[0].to_bytes()


def test_open_group_descriptor_out_of_range(editor, fs):
    with pytest.raises(FilesystemError):
        editor.open_structure(StructureType.GROUP_DESC, fs.groups_count)


def test_open_inode(editor, fs):
    inode = Inode(i_mode=0o100644, i_size=4096, i_links_count=1,
                  block=tuple(range(1, 16)))
    fs.write_inode(2, inode)
    editor.open_structure(StructureType.INODE, 2)
    assert bytes(editor.buffer[:Inode.SIZE]) == inode.to_bytes()
    assert Inode.from_bytes(editor.buffer[:Inode.SIZE]).block == tuple(range(1, 16))


def test_open_block(editor, fs):
    data = bytes(i % 251 for i in range(BLOCK))
    fs.write_block(10, data)
    editor.open_structure(StructureType.BLOCK, 10)
    assert bytes(editor.buffer[:BLOCK]) == data
    assert not any(editor.buffer[BLOCK:])


def test_open_block_zero_raises(editor):
    with pytest.raises(FilesystemError):
        editor.open_structure(StructureType.BLOCK, 0)


def test_open_block_bitmap(editor, fs):
    data = bytes([0xFF, 0x0F]) + bytes(BLOCK - 2)
    fs.write_block(3, data)
    editor.open_structure(StructureType.BLOCK_BITMAP, 0)
    assert bytes(editor.buffer[:fs.blocks_per_group // 8]) == data


def test_open_inode_bitmap_copies_only_group_bits(editor, fs):
    data = bytes([0x7F, 0x01, 0xAA]) + bytes(BLOCK - 3)
    fs.write_block(4, data)
    editor.open_structure(StructureType.INODE_BITMAP, 0)
    width = fs.inodes_per_group // 8
    assert bytes(editor.buffer[:width]) == data[:width]
    assert not any(editor.buffer[width:])


def test_open_bitmap_bad_group(editor, fs):
    with pytest.raises(FilesystemError):
        editor.open_structure(StructureType.INODE_BITMAP, fs.groups_count)


def test_open_resets_cursor(editor):
    editor.move_cursor(3, 4)
    editor.open_structure(StructureType.SUPERBLOCK, 0)
    assert (editor.cursor_x, editor.cursor_y) == (0, 0)


def test_move_cursor_clamps(editor):
    editor.move_cursor(-5, -5)
    assert (editor.cursor_x, editor.cursor_y) == (0, 0)
    editor.move_cursor(100, 100)
    assert editor.cursor_x == editor.bytes_per_row - 1
    assert editor.cursor_y == editor.view_rows - 1


def test_move_cursor_stays_inside_buffer(editor):
    editor.view_rows = 1000
    editor.move_cursor(0, 999)
    assert (editor.cursor_x, editor.cursor_y) == (0, 0)
    editor.move_cursor(0, 5)
    assert editor.cursor_y == 5
    assert editor.cursor_index() == 5 * editor.bytes_per_row


def test_set_byte_only_in_edit_mode(editor):
    editor.move_cursor(2, 1)
    editor.set_byte(0x42)
    assert editor.buffer[editor.cursor_index()] == 0
    editor.editing_mode = True
    editor.set_byte(0x42)
    assert editor.buffer[18] == 0x42


def test_tab_toggles_edit_mode(editor):
    assert editor.handle_key(ord("\t")) is True
    assert editor.editing_mode is True
    editor.handle_key("\t")
    assert editor.editing_mode is False


def test_arrow_keys_move(editor):
    editor.handle_key(curses.KEY_RIGHT)
    editor.handle_key(curses.KEY_DOWN)
    editor.handle_key(curses.KEY_DOWN)
    editor.handle_key(curses.KEY_UP)
    assert (editor.cursor_x, editor.cursor_y) == (1, 1)
    editor.handle_key(curses.KEY_LEFT)
    assert editor.cursor_x == 0


def test_quit_keys(editor):
    assert editor.handle_key(ord("q")) is False
    assert editor.handle_key(ord("Q")) is False


def test_hex_input_sets_high_nibble_and_advances(editor):
    editor.buffer[0] = 0x0F
    editor.editing_mode = True
    assert editor.handle_key(ord("a")) is True
    assert editor.buffer[0] == 0xAF
    assert editor.cursor_x == 1
    editor.handle_key(ord("C"))
    assert editor.buffer[1] >> 4 == 0xC


def test_hex_input_ignored_in_view_mode(editor):
    editor.handle_key(ord("7"))
    assert editor.buffer[0] == 0
    assert editor.cursor_x == 0


def test_non_hex_key_ignored(editor):
    editor.editing_mode = True
    editor.handle_key(ord("z"))
    assert editor.buffer[0] == 0
    assert editor.cursor_x == 0


def test_save_block_round_trip(editor, fs):
    editor.open_structure(StructureType.BLOCK, 20)
    editor.editing_mode = True
    editor.set_byte(0x5A)
    editor.save_changes()
    assert fs.read_block(20)[0] == 0x5A


def test_save_inode_round_trip(editor, fs):
    editor.open_structure(StructureType.INODE, 3)
    editor.buffer[4] = 0x10
    editor.save_changes()
    assert fs.read_inode(3).i_size == 0x10


def test_save_superblock_persists(editor, image):
    editor.open_structure(StructureType.SUPERBLOCK, 0)
    editor.buffer[52] = 9
    editor.save_changes()
    assert editor.fs.sb.s_mnt_count == 9
    editor.fs.close()
    with Filesystem(image) as reopened:
        assert reopened.sb.s_mnt_count == 9


def test_save_group_descriptor_unsupported(editor):
    editor.open_structure(StructureType.GROUP_DESC, 0)
    with pytest.raises(FilesystemError):
        editor.save_changes()


def test_save_without_structure_raises(editor):
    with pytest.raises(FilesystemError):
        editor.save_changes()


def test_save_key_reports_result(editor):
    editor.open_structure(StructureType.GROUP_DESC, 0)
    assert editor.handle_key(ord("s")) is True
    assert editor.message == "Error saving changes!"
    editor.open_structure(StructureType.BLOCK, 12)
    editor.handle_key(ord("S"))
    assert editor.message == "Changes saved successfully."


def test_view_lines_layout(editor):
    editor.open_structure(StructureType.SUPERBLOCK, 0)
    lines = editor.view_lines()
    assert len(lines) == editor.view_rows
    assert lines[0].startswith("00000400: ")
    assert lines[1].startswith("00000410: ")
    assert all(len(line) == len(lines[0]) for line in lines)
    magic_row = lines[3]
    assert "53 ef" in magic_row
    assert magic_row.split("| ", 1)[1][8:10] == "S."


def test_view_lines_printable_text(editor):
    editor.buffer[:4] = b"Ab\x00~"
    text = editor.view_lines()[0].split("| ", 1)[1]
    assert text.startswith("Ab.~")


def test_render_view_mode(editor):
    editor.open_structure(StructureType.SUPERBLOCK, 0)
    screen = FakeScreen()
    editor.render(screen)
    strings = screen.strings()
    assert screen.erased == 1 and screen.refreshed == 1
    assert "Binary Editor - Offset: 0x00000400" in strings
    assert "VIEW MODE".ljust(80) in strings
    assert "EDIT MODE HELP" not in strings
    assert (2, 0, "00000400: ") in screen.texts


def test_render_edit_mode_shows_help(editor):
    editor.editing_mode = True
    editor.message = "Changes saved successfully."
    screen = FakeScreen()
    editor.render(screen)
    strings = screen.strings()
    assert "EDIT MODE".ljust(80) in strings
    assert "EDIT MODE HELP" in strings
    assert "directly to disk!" in strings
    assert (editor.view_rows + 4, 0, "Changes saved successfully.") in screen.texts
    assert screen.chars


def test_render_narrow_screen_hides_help(editor):
    editor.editing_mode = True
    screen = FakeScreen(cols=60)
    editor.render(screen)
    assert "EDIT MODE HELP" not in screen.strings()
    assert screen.chars == []