"""File and folder permission flags.

Six independent bits stored as a single integer on each ACL entry. The named
combinations are conveniences only; storage always holds the raw mask.
"""

from enum import IntFlag


class FilePermissions(IntFlag):
    NONE = 0
    VIEW = 1             # can see the file/folder exists
    DOWNLOAD = 2         # can read file contents
    UPLOAD = 4           # can add files (and subfolders) to a folder
    DELETE = 8           # can delete files/folders
    MODIFY_METADATA = 16 # can edit file properties
    ADMIN = 32           # can manage permissions


VIEW_ONLY = FilePermissions.VIEW
READ_ONLY = FilePermissions.VIEW | FilePermissions.DOWNLOAD
READ_WRITE = READ_ONLY | FilePermissions.UPLOAD
EDITOR = READ_WRITE | FilePermissions.DELETE | FilePermissions.MODIFY_METADATA
FULL_CONTROL = EDITOR | FilePermissions.ADMIN

ALL_BITS = int(FULL_CONTROL)


def is_valid_mask(mask: int) -> bool:
    """True if *mask* only uses the six defined bits."""
    return 0 <= mask <= ALL_BITS


def permission_names(mask: int) -> list[str]:
    """Names of the individual bits set in *mask*, lowest bit first."""
    return [
        flag.name for flag in FilePermissions
        if flag is not FilePermissions.NONE and mask & flag
    ]
