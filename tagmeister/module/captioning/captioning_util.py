import re
from collections.abc import Iterable
from pathlib import Path

from tagmeister.module.captioning.CaptionSample import CaptionSample
from tagmeister.util import path_util

from natsort import natsort_keygen, ns

# Finder-style ordering: case-insensitive, numbers compared by value, locale-aware collation
_filename_sort_key = natsort_keygen(alg=ns.LOCALE | ns.IGNORECASE)


def is_supported_image(path: Path) -> bool:
    """Returns True if the file has a supported image extension and is not a mask label image."""
    return path_util.is_supported_image_extension(path.suffix) and "-masklabel.png" not in path.name


def get_sample_filenames(sample_dir: str, include_subdirs: bool = False) -> list[str]:
    sample_path = Path(sample_dir)
    if not sample_path.is_dir():
        return []

    pattern = "**/*" if include_subdirs else "*"
    return [str(p) for p in sample_path.glob(pattern) if p.is_file() and is_supported_image(p)]


def get_samples(sample_dir: str, include_subdirs: bool = False) -> list[CaptionSample]:
    return sort_samples(CaptionSample(filename) for filename in get_sample_filenames(sample_dir, include_subdirs))


def filename_sort_key(filename: str):
    return _filename_sort_key(filename)


def sort_samples(samples: Iterable[CaptionSample]) -> list[CaptionSample]:
    """Orders samples by their base file name, ascending. Ties fall back to the full path."""
    return sorted(samples, key=lambda s: (filename_sort_key(s.filename), s.image_filename))


def is_empty_caption(caption: str) -> bool:
    # Check effectively empty captions.
    # Removes whitespace and punctuation that doesn't affect content.
    stripped = re.sub(r"[\s\.,_`();:'\"-]+", "", caption)
    return not stripped
