from __future__ import annotations

import math
import struct
from typing import Iterable, Optional

from tts_gateway.errors import EncodingError


# Fixed output format of the upstream provider: mono, 16-bit, 24 kHz.
SAMPLE_RATE_HZ = 24000
NUM_CHANNELS = 1
BITS_PER_SAMPLE = 16
WAV_HEADER_SIZE = 44

_HEADER = struct.Struct('<4sI4s4sIHHIIHH4sI')


def wav_header(
    data_size: int,
    sample_rate: int = SAMPLE_RATE_HZ,
    num_channels: int = NUM_CHANNELS,
    bits_per_sample: int = BITS_PER_SAMPLE,
) -> bytes:
    byte_rate = sample_rate * num_channels * bits_per_sample // 8
    block_align = num_channels * bits_per_sample // 8
    return _HEADER.pack(
        b'RIFF',
        36 + data_size,
        b'WAVE',
        b'fmt ',
        16,  # Subchunk1Size for PCM
        1,   # AudioFormat PCM
        num_channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b'data',
        data_size,
    )


def encode_wav(pcm: Optional[bytes]) -> bytes:
    """Wrap raw PCM16LE mono 24 kHz samples in a RIFF/WAVE container.

    The result is always ``44 + len(pcm)`` bytes long.
    """
    if not pcm:
        raise EncodingError("Provider returned no audio payload")
    return wav_header(len(pcm)) + bytes(pcm)


def decode_wav(container: bytes) -> bytes:
    """Return the PCM payload of a container produced by `encode_wav`."""
    if len(container) < WAV_HEADER_SIZE:
        raise EncodingError("Container shorter than the WAV header")

    (riff, riff_size, wave, fmt, fmt_size, audio_format, _channels,
     _rate, _byte_rate, _block_align, _bits, data_tag, data_size) = _HEADER.unpack_from(container)

    if riff != b'RIFF' or wave != b'WAVE' or fmt != b'fmt ' or data_tag != b'data':
        raise EncodingError("Not a RIFF/WAVE container")
    if fmt_size != 16 or audio_format != 1:
        raise EncodingError("Unsupported WAV format block")
    if riff_size != 36 + data_size or len(container) != WAV_HEADER_SIZE + data_size:
        raise EncodingError("WAV size fields do not match the payload")
    return bytes(container[WAV_HEADER_SIZE:])


def pcm16le_from_floats(samples: Iterable[float]) -> bytes:
    # Clamp and convert [-1.0, 1.0] floats to 16-bit little-endian PCM
    out = bytearray()
    for s in samples:
        v = max(-1.0, min(1.0, float(s)))
        iv = int(round(v * 32767.0))
        out += struct.pack('<h', iv)
    return bytes(out)


def tone(frequency: float, duration_s: float, sample_rate: int, gain: float = 0.2) -> list[float]:
    n = int(duration_s * sample_rate)
    two_pi_f = 2.0 * math.pi * frequency
    return [math.sin(two_pi_f * (i / sample_rate)) * gain for i in range(n)]


def silence(duration_s: float, sample_rate: int) -> list[float]:
    n = int(duration_s * sample_rate)
    return [0.0] * n
