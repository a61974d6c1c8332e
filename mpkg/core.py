"""
Core implementation of the MPKG library.
Provides classes and functions to read MPKG archive indexes and extract their members.
"""

import enum
import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Union

from .constants import (
    ARCHIVE_EXTENSION, BUFFER_SIZE, RESERVED_SIZE,
    TEXT_ENCODING, TEXT_ERRORS, U32_SIZE
)
from .exceptions import InvalidOutputTargetError, MPKGError, UnsafeMemberPathError
from .streams import copy_bounded, read_exact, read_fixed_u32, skip_bytes

logger = logging.getLogger("mpkg.core")

PathLike = Union[str, os.PathLike]


def decode_text(data: bytes) -> str:
    """Decode header or name bytes, replacing invalid sequences."""
    return data.decode(TEXT_ENCODING, errors=TEXT_ERRORS)


class ArchiveState(enum.Enum):
    """Progress of a single archive through decoding and extraction."""
    PENDING = "pending"
    OPENED = "opened"
    HEADER_READ = "header read"
    INDEX_BUILT = "index built"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


class MPKGHeader:
    """
    Archive header: a free-form format tag and the declared member count.
    """

    def __init__(self, format_tag: bytes = b'', member_count: int = 0):
        self.format_tag = format_tag
        self.member_count = member_count

    @property
    def version(self) -> str:
        """Format tag as text, for display only."""
        return decode_text(self.format_tag)

    @classmethod
    def read(cls, stream: BinaryIO) -> 'MPKGHeader':
        """Read the header from the start of an archive stream."""
        header_length = read_fixed_u32(stream, "header length")
        format_tag = read_exact(stream, header_length, "header text")
        member_count = read_fixed_u32(stream, "member count")
        return cls(format_tag, member_count)

    def encoded_size(self) -> int:
        return 2 * U32_SIZE + len(self.format_tag)


class MPKGEntry:
    """
    Represents a single member in an MPKG archive's table of contents.
    """

    def __init__(self, raw_name: bytes, size: int, offset: int = 0):
        self.raw_name = raw_name
        self.size = size
        # Absolute position of the payload, derived from the TOC
        self.offset = offset

    @property
    def name(self) -> str:
        return decode_text(self.raw_name)

    @property
    def relative_path(self) -> Path:
        """Member path built from the raw name bytes."""
        return Path(os.fsdecode(self.raw_name))

    def __repr__(self) -> str:
        return f"MPKGEntry(name={self.name!r}, size={self.size}, offset={self.offset})"


class MPKGArchive:
    """
    Main class for handling MPKG files.
    Holds the header and ordered index of an archive and extracts its members.
    """

    def __init__(self, header: Optional[MPKGHeader] = None,
                 entries: Optional[List[MPKGEntry]] = None,
                 path: Optional[PathLike] = None):
        self.header = header or MPKGHeader()
        self.entries: List[MPKGEntry] = entries or []
        self.path = Path(path) if path is not None else None

    @classmethod
    def read_index(cls, stream: BinaryIO, path: Optional[PathLike] = None) -> 'MPKGArchive':
        """
        Read the header and the full table of contents.

        Leaves the stream positioned at the first payload byte.

        Args:
            stream: Readable binary stream at the start of the archive
            path: Archive file path, if the stream came from one

        Returns:
            MPKGArchive with every entry's payload offset filled in
        """
        header = MPKGHeader.read(stream)
        return cls.read_toc(stream, header, path)

    @classmethod
    def read_toc(cls, stream: BinaryIO, header: MPKGHeader,
                 path: Optional[PathLike] = None) -> 'MPKGArchive':
        """Read ``header.member_count`` TOC entries following the header."""
        logger.info(f"Format version: {header.version}")
        logger.info(f"Member count: {header.member_count}")

        entries = []
        toc_end = header.encoded_size()
        for index in range(header.member_count):
            name_length = read_fixed_u32(stream, f"name length of entry {index}")
            raw_name = read_exact(stream, name_length, f"name of entry {index}")
            skip_bytes(stream, RESERVED_SIZE, f"reserved field of entry {index}")
            size = read_fixed_u32(stream, f"size of entry {index}")
            entries.append(MPKGEntry(raw_name, size))
            toc_end += name_length + RESERVED_SIZE + 2 * U32_SIZE
            logger.debug(f"TOC entry {index}: {decode_text(raw_name)} ({size} bytes)")

        offset = toc_end
        for entry in entries:
            entry.offset = offset
            offset += entry.size

        return cls(header, entries, path)

    @classmethod
    def load(cls, file_path: PathLike) -> 'MPKGArchive':
        """
        Load the index of an MPKG archive without extracting anything.

        Args:
            file_path: Path to the MPKG file to load

        Returns:
            Loaded MPKGArchive instance
        """
        with open(file_path, 'rb') as f:
            return cls.read_index(f, path=file_path)

    @property
    def data_offset(self) -> int:
        """Position of the first payload byte."""
        if self.entries:
            return self.entries[0].offset
        return self.header.encoded_size()

    @property
    def payload_size(self) -> int:
        return sum(entry.size for entry in self.entries)

    def get_entry(self, name: str) -> Optional[MPKGEntry]:
        """
        Get an entry by name.

        Args:
            name: Name of the entry to retrieve

        Returns:
            The first entry with that name if found, None otherwise
        """
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def list_entries(self) -> List[str]:
        """
        List all entry names in the archive, in TOC order.

        Returns:
            List of entry names
        """
        return [entry.name for entry in self.entries]

    def member_path(self, destination: Path, entry: MPKGEntry) -> Path:
        """
        Resolve where a member is written under ``destination``.

        Raises:
            UnsafeMemberPathError: If the name is absolute or leaves ``destination``
        """
        if b"\x00" in entry.raw_name:
            raise UnsafeMemberPathError(f"Member name contains a NUL byte: {entry.name!r}")
        relative = entry.relative_path
        if relative.anchor:
            raise UnsafeMemberPathError(f"Absolute member path: {entry.name}")

        target = destination / relative
        root = destination.resolve()
        resolved = target.resolve()
        if resolved == root or root not in resolved.parents:
            raise UnsafeMemberPathError(f"Member path escapes output directory: {entry.name!r}")
        return target

    def iter_extract(self, stream: BinaryIO, destination: PathLike,
                     buffer_size: int = BUFFER_SIZE) -> Iterator[Path]:
        """
        Extract members in TOC order, yielding each written path.

        ``stream`` must be positioned at the first payload byte, as left by
        ``read_index``. Payloads are read strictly sequentially. On failure
        the files already written stay on disk and later members are never
        created.
        """
        destination = Path(destination)
        total = len(self.entries)
        for index, entry in enumerate(self.entries, 1):
            logger.info(f"Extracting member {index}/{total}: {entry.name}")
            target = self.member_path(destination, entry)
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'wb') as out:
                copy_bounded(stream, out, entry.size, buffer_size)
            logger.debug(f"Wrote {entry.size} bytes to {target}")
            yield target

    def extract_to(self, stream: BinaryIO, destination: PathLike,
                   buffer_size: int = BUFFER_SIZE) -> List[Path]:
        """Extract every member; see ``iter_extract``."""
        return list(self.iter_extract(stream, destination, buffer_size))

    def extract_entry(self, name: str, output_path: PathLike,
                      buffer_size: int = BUFFER_SIZE):
        """
        Extract a single entry to a file by seeking to its payload.

        Args:
            name: Name of the entry to extract
            output_path: Path where to save the extracted file
            buffer_size: Copy buffer size
        """
        entry = self.get_entry(name)
        if not entry:
            raise KeyError(f"Entry '{name}' not found")
        if self.path is None:
            raise MPKGError("Archive was not loaded from a file")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'rb') as f:
            f.seek(entry.offset)
            with open(output_path, 'wb') as out:
                copy_bounded(f, out, entry.size, buffer_size)


class ExtractionResult:
    """
    Outcome of extracting one archive.
    """

    def __init__(self, archive_path: Path, output_dir: Optional[Path] = None):
        self.archive_path = archive_path
        self.output_dir = output_dir
        self.archive: Optional[MPKGArchive] = None
        self.extracted: List[Path] = []
        self.state = ArchiveState.PENDING
        self.failed_state: Optional[ArchiveState] = None
        self.entry_name: Optional[str] = None
        self.error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state is ArchiveState.DONE

    @property
    def header(self) -> Optional[MPKGHeader]:
        return self.archive.header if self.archive else None

    def fail(self, error: Exception):
        """Record ``error`` as the terminal failure of this archive."""
        self.failed_state = self.state
        self.state = ArchiveState.FAILED
        self.error = error
        if (self.failed_state is ArchiveState.EXTRACTING and self.archive
                and len(self.extracted) < len(self.archive.entries)):
            # The member being extracted is the one after the last written
            self.entry_name = self.archive.entries[len(self.extracted)].name

    @property
    def message(self) -> str:
        if self.ok:
            return (f"{self.archive_path}: extracted {len(self.extracted)} "
                    f"members to {self.output_dir}")
        if self.state is not ArchiveState.FAILED:
            return f"{self.archive_path}: {self.state.value}"
        where = f" (entry {self.entry_name})" if self.entry_name is not None else ""
        return f"{self.archive_path}{where}: {self.error}"

    def __repr__(self) -> str:
        return f"ExtractionResult({self.archive_path!s}, state={self.state.name})"


def prepare_output_dir(output_root: Path, name: str) -> Path:
    """
    Create ``output_root/name``, creating ``output_root`` if needed.

    Raises:
        InvalidOutputTargetError: If ``output_root`` is unusable
    """
    if output_root.exists() and not output_root.is_dir():
        raise InvalidOutputTargetError(f"Output path is not a directory: {output_root}")
    try:
        output_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InvalidOutputTargetError(f"Cannot create output directory {output_root}: {e}") from e

    destination = output_root / name
    destination.mkdir(exist_ok=True)
    return destination


def decode_and_extract(archive_path: PathLike, output_root: PathLike,
                       buffer_size: int = BUFFER_SIZE) -> ExtractionResult:
    """
    Decode one MPKG archive and extract its members to ``output_root/<stem>``.

    Archive-level failures are not raised; they are recorded on the returned
    result so that callers processing many archives can carry on.

    Args:
        archive_path: Path to the MPKG file
        output_root: Directory under which the archive's folder is created
        buffer_size: Copy buffer size

    Returns:
        ExtractionResult describing success or the first failure
    """
    archive_path = Path(archive_path)
    output_root = Path(output_root)
    result = ExtractionResult(archive_path)

    try:
        with open(archive_path, 'rb') as stream:
            result.state = ArchiveState.OPENED
            result.output_dir = prepare_output_dir(output_root, archive_path.stem)

            header = MPKGHeader.read(stream)
            result.state = ArchiveState.HEADER_READ

            result.archive = MPKGArchive.read_toc(stream, header, archive_path)
            result.state = ArchiveState.INDEX_BUILT

            result.state = ArchiveState.EXTRACTING
            for target in result.archive.iter_extract(stream, result.output_dir, buffer_size):
                result.extracted.append(target)

        result.state = ArchiveState.DONE
        logger.info(f"Successfully extracted {archive_path} ({len(result.extracted)} members)")
    except (MPKGError, OSError) as e:
        result.fail(e)
        logger.error(f"Failed to extract {result.message}")

    return result


def find_archives(input_dir: PathLike, extension: str = ARCHIVE_EXTENSION) -> List[Path]:
    """
    List archive files directly inside ``input_dir``, sorted by name.

    The extension comparison ignores case.
    """
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {input_dir}")

    suffix = extension.lower()
    if not suffix.startswith('.'):
        suffix = '.' + suffix

    return sorted(
        path for path in input_dir.iterdir()
        if path.is_file() and path.suffix.lower() == suffix
    )


def extract_directory(input_dir: PathLike, output_root: PathLike,
                      extension: str = ARCHIVE_EXTENSION,
                      buffer_size: int = BUFFER_SIZE) -> List[ExtractionResult]:
    """
    Extract every archive found in ``input_dir``.

    Each archive is processed to completion before the next; a failure in
    one archive does not stop the others.

    Returns:
        One ExtractionResult per archive, in processing order
    """
    archives = find_archives(input_dir, extension)
    logger.info(f"Found {len(archives)} archives in {input_dir}")

    results = []
    for path in archives:
        logger.info(f"Processing {path.name}")
        results.append(decode_and_extract(path, output_root, buffer_size))
    return results
