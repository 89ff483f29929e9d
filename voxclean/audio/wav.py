"""
Minimal WAV reader for pipeline test audio.

Only mono 16-bit PCM and 32-bit IEEE float files are accepted; both come back
as float32 samples in [-1.0, 1.0].
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union
import struct

import numpy as np

RIFF_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8

WAVE_FORMAT_PCM = 1
WAVE_FORMAT_IEEE_FLOAT = 3


@dataclass
class WavData:
    samples: np.ndarray  # float32, mono
    sample_rate: int


def _find_chunk(buffer: bytes, chunk_id: bytes) -> int:
    """Offset of the chunk header for ``chunk_id``, or -1 if absent."""
    offset = RIFF_HEADER_SIZE
    while offset < len(buffer) - CHUNK_HEADER_SIZE:
        if buffer[offset:offset + 4] == chunk_id:
            return offset
        (chunk_size,) = struct.unpack_from("<I", buffer, offset + 4)
        offset += CHUNK_HEADER_SIZE + chunk_size
        # Chunks are word-aligned
        if chunk_size % 2:
            offset += 1
    return -1


def read_wav(path: Union[str, Path]) -> WavData:
    """
    Read a mono WAV file.

    Args:
        path: Path to the WAV file

    Returns:
        WavData with float32 samples and the file's sample rate.

    Raises:
        ValueError: If the file is not RIFF/WAVE, is not mono, or uses an
            unsupported sample format.
    """
    path = Path(path)
    buffer = path.read_bytes()

    if len(buffer) < RIFF_HEADER_SIZE or buffer[0:4] != b"RIFF" or buffer[8:12] != b"WAVE":
        raise ValueError(f"Not a RIFF/WAVE file: {path}")

    fmt_offset = _find_chunk(buffer, b"fmt ")
    if fmt_offset == -1:
        raise ValueError(f"No fmt chunk in {path}")
    if fmt_offset + CHUNK_HEADER_SIZE + 16 > len(buffer):
        raise ValueError(f"Truncated fmt chunk in {path}")

    audio_format, channels, sample_rate = struct.unpack_from("<HHI", buffer, fmt_offset + 8)
    (bits_per_sample,) = struct.unpack_from("<H", buffer, fmt_offset + 22)

    if channels != 1:
        raise ValueError(f"Expected mono audio, got {channels} channels")

    data_offset = _find_chunk(buffer, b"data")
    if data_offset == -1:
        raise ValueError(f"No data chunk in {path}")

    (data_size,) = struct.unpack_from("<I", buffer, data_offset + 4)
    start = data_offset + CHUNK_HEADER_SIZE
    data = buffer[start:start + data_size]

    if audio_format == WAVE_FORMAT_IEEE_FLOAT and bits_per_sample == 32:
        count = len(data) // 4
        samples = np.frombuffer(data, dtype="<f4", count=count).astype(np.float32)
    elif audio_format == WAVE_FORMAT_PCM and bits_per_sample == 16:
        count = len(data) // 2
        samples = np.frombuffer(data, dtype="<i2", count=count).astype(np.float32) / 32768.0
    else:
        raise ValueError(
            f"Unsupported WAV format: audioFormat={audio_format}, bitsPerSample={bits_per_sample}"
        )

    return WavData(samples=samples.astype(np.float32), sample_rate=int(sample_rate))
