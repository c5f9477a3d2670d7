# extinspect

A terminal tool for examining and editing the on-disk structures of
ext2, ext3 and ext4 filesystems: the superblock, block group descriptors,
block and inode bitmaps, inodes and raw data blocks.

## Installing

```
pip install .
```

## Running

```
extinspect /dev/sda1
```

The single argument is a block device or a filesystem image file. The
device is opened read-write when possible and read-only otherwise (a
warning is printed). Reading a real device usually needs root privileges.
If the file cannot be opened or is not an ext filesystem, the command
prints the reason and exits with status 1.

The main menu offers:

1. Filesystem Analyzer — superblock summary and the details of one block
   group (press `G` to choose the group).
2. Block Browser — allocation status, type and the first bytes of a block.
   Left/right step by 1, up/down by 10; `G` jumps to a block; `E` opens
   it in the binary editor.
3. Inode Browser — mode, file type, size, owners, times and block
   pointers. Same navigation keys; `E` opens the inode in the binary
   editor.
4. Edit Superblock — opens the superblock in the binary editor.

`F1` shows detailed help from any screen, `ESC` returns to the menu and
`Q` quits.

## Binary editor

Move with the arrow keys and press `TAB` to switch between view and edit
mode. In edit mode, typing a hex digit (`0-9`, `A-F`) sets the high nibble
of the byte under the cursor, and the cursor moves right. `S` writes the
superblock, inode or data block back to disk; the editor reports whether
the save succeeded.

**Changes are written directly to the device and can corrupt the
filesystem.** Work on an image copy whenever you can.

## Using it as a library

```python
from extinspect.analyzer import Filesystem, analyze_filesystem
from extinspect.utils import inode_to_string

with Filesystem("disk.img") as fs:
    print(analyze_filesystem(fs))
    print(inode_to_string(fs.read_inode(2)))
```

- `extinspect.analyzer.Filesystem` opens a device, loads the superblock
  and group descriptors, and offers `read_block`, `write_block`,
  `read_inode`, `write_inode`, `block_bitmap`, `inode_bitmap`,
  `is_block_allocated`, `is_inode_allocated` and `write_superblock`. It
  raises `FilesystemError` when the file is not an ext filesystem or an
  access falls outside it.
- `analyze_filesystem(fs)` returns a text report of sizes, features and
  the group descriptor table.
- `extinspect.structures` holds the `Superblock`, `GroupDescriptor` and
  `Inode` dataclasses with `from_bytes` and `to_bytes`.
- `extinspect.utils` has `format_value`, bitmap bit helpers,
  `mode_string`, `fs_type_string` and text renderings of each structure.
- `extinspect.editor.Editor` is the byte buffer behind the binary editor;
  `extinspect.views` builds the text of each screen.

## Limitations

- There is no non-interactive command: the analysis report is only
  available through `analyze_filesystem` from Python.
- Group descriptors and bitmaps can be loaded into `Editor` but not saved.
- Only the 32-byte group descriptor and the 128-byte base inode are read;
  the high halves of 64-bit fields are ignored.
- The editor views a fixed window of 16 rows of 16 bytes; it does not
  scroll.