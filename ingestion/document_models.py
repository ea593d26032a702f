from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class PageDescriptor:
    url: str  # canonical URL
    title: str
    discovered_links: Tuple[str, ...] = ()  # canonical, in-scope, first-discovery order


@dataclass(frozen=True)
class ContentBlock:
    section: str  # nearest preceding heading, or a root label
    text: str


@dataclass
class ExtractedPage:
    title: str
    blocks: List[ContentBlock] = field(default_factory=list)


@dataclass(frozen=True)
class Chunk:
    id: str
    title: str
    section: str
    url: str
    text: str

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)
