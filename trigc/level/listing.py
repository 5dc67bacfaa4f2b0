# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Level listings: the decoded object string of one level.

	kS38,...,kA13,0;1,1,2,15,3,45;1,1268,2,45,3,15,51,4;

Objects are separated by `;`, properties are `key,value` pairs. The optional
leading segment (starting with `kS` or `kA`) holds level settings and is kept
verbatim. Objects keep their raw fields in original order so that an object
nobody touched serializes back byte for byte. Empty segments are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from trigc.core.errors import InvalidFormat
from trigc.ir.objects import MARKER_KEY, MARKER_VALUE, OBJ_ID

HEADER_PREFIXES = ("kS", "kA")


@dataclass
class RawObject:
	fields: List[Tuple[str, str]] = field(default_factory=list)

	@classmethod
	def parse(cls, text: str) -> "RawObject":
		parts = text.split(",")
		if len(parts) % 2:
			raise InvalidFormat(f"object has an odd number of fields: {text[:60]!r}")
		fields: List[Tuple[str, str]] = []
		seen: set = set()
		for i in range(0, len(parts), 2):
			key, value = parts[i], parts[i + 1]
			if not key.isdigit():
				raise InvalidFormat(f"object property key is not an integer: {key!r}")
			if key in seen:
				raise InvalidFormat(f"object repeats property key {key}")
			seen.add(key)
			fields.append((key, value))
		return cls(fields)

	@classmethod
	def from_params(cls, params: Dict[int, str]) -> "RawObject":
		return cls([(str(k), v) for k, v in params.items()])

	def get(self, key: int) -> Optional[str]:
		skey = str(key)
		for k, v in self.fields:
			if k == skey:
				return v
		return None

	def params(self) -> Dict[int, str]:
		return {int(k): v for k, v in self.fields}

	def kind(self) -> Optional[int]:
		raw = self.get(OBJ_ID)
		return int(raw) if raw is not None and raw.lstrip("-").isdigit() else None

	@property
	def is_generated(self) -> bool:
		return self.get(MARKER_KEY) == str(MARKER_VALUE)

	def serialize(self) -> str:
		return ",".join(f"{k},{v}" for k, v in self.fields)


@dataclass
class LevelListing:
	header: Optional[str] = None
	objects: List[RawObject] = field(default_factory=list)
	trailing_separator: bool = True

	@classmethod
	def parse(cls, text: str) -> "LevelListing":
		text = text.strip()
		if not text:
			return cls()
		segments = text.split(";")
		trailing = segments[-1] == ""
		header: Optional[str] = None
		if segments[0].startswith(HEADER_PREFIXES):
			header = segments[0]
			segments = segments[1:]
		objects = [RawObject.parse(seg) for seg in segments if seg]
		return cls(header=header, objects=objects, trailing_separator=trailing)

	def serialize(self) -> str:
		parts: List[str] = []
		if self.header is not None:
			parts.append(self.header)
		parts.extend(obj.serialize() for obj in self.objects)
		if not parts:
			return ""
		text = ";".join(parts)
		return text + ";" if self.trailing_separator else text

	def __iter__(self) -> Iterator[RawObject]:
		return iter(self.objects)

	def __len__(self) -> int:
		return len(self.objects)


def parse_listing(text: str) -> LevelListing:
	return LevelListing.parse(text)


__all__ = ["LevelListing", "RawObject", "parse_listing", "HEADER_PREFIXES"]
