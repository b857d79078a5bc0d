import struct

import pytest


def words(*values, endian="<"):
    """Pack 32-bit words back to back."""
    return b"".join(struct.pack(endian + "I", v) for v in values)


@pytest.fixture
def firmware_file(tmp_path):
    """Write *data* to a temporary file and return its path as a string."""

    def _write(data, name="firmware.bin"):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    return _write


@pytest.fixture
def relocated_image():
    """An image whose string at 0x100 is referenced three times as if based at 0x2000."""
    data = bytearray(0x200)
    data[0x100:0x108] = b"BOOTING\x00"
    pointer = struct.pack("<I", 0x100 + 0x2000)
    for offset in (0x10, 0x40, 0x180):
        data[offset:offset + 4] = pointer
    return bytes(data)
