"""
type_guid.py
128-bit type identity values read from Guid attributes.
The all-zero value doubles as the "absent" sentinel, so every TypeDef has a TypeGuid.
"""
import uuid
from typing import Any, List, Tuple

from metadata import MetadataError, TypeDef

GUID_ATTRIBUTE = "Guid"


class TypeGuid:
    def __init__(self, value: int = 0):
        if not 0 <= value < (1 << 128):
            raise ValueError(f"GUID value out of range: {value!r}")
        self.value = value

    @classmethod
    def absent(cls) -> 'TypeGuid':
        return cls(0)

    @classmethod
    def from_string(cls, text: str) -> 'TypeGuid':
        return cls(uuid.UUID(text.strip('{}')).int)

    @classmethod
    def from_attribute_args(cls, args: List[Any]) -> 'TypeGuid':
        """
        Accepts either a single "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx" string or the
        eleven numeric components (u32, u16, u16, 8 x u8) used by the metadata encoding.
        """
        if len(args) == 1 and isinstance(args[0], str):
            try:
                return cls.from_string(args[0])
            except ValueError as e:
                raise MetadataError(f"Invalid GUID string {args[0]!r}") from e
        if len(args) == 11 and all(isinstance(a, int) for a in args):
            data1, data2, data3 = args[0], args[1], args[2]
            data4 = args[3:]
            if data1 >= (1 << 32) or data2 >= (1 << 16) or data3 >= (1 << 16) or any(b > 0xFF for b in data4):
                raise MetadataError(f"GUID component out of range in {args!r}")
            value = (data1 << 96) | (data2 << 80) | (data3 << 64)
            for index, byte in enumerate(data4):
                value |= byte << (8 * (7 - index))
            return cls(value)
        raise MetadataError(f"Guid attribute expects one string or eleven integers, got {args!r}")

    @classmethod
    def from_type_def(cls, definition: TypeDef) -> 'TypeGuid':
        attribute = definition.find_attribute(GUID_ATTRIBUTE)
        if attribute is None:
            return cls.absent()
        return cls.from_attribute_args(attribute.args)

    @property
    def is_absent(self) -> bool:
        return self.value == 0

    def fields(self) -> Tuple[int, int, int, List[int]]:
        data1 = (self.value >> 96) & 0xFFFFFFFF
        data2 = (self.value >> 80) & 0xFFFF
        data3 = (self.value >> 64) & 0xFFFF
        data4 = [(self.value >> (8 * (7 - i))) & 0xFF for i in range(8)]
        return data1, data2, data3, data4

    def __eq__(self, other):
        return isinstance(other, TypeGuid) and self.value == other.value

    def __hash__(self):
        return hash(self.value)

    def __str__(self):
        return str(uuid.UUID(int=self.value))

    def __repr__(self):
        return f"TypeGuid({str(self)!r})"
