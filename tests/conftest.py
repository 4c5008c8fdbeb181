"""Global pytest configuration for the LinkGuard test suite.

Makes the ``src`` tree importable without installing the package and provides
the shared schema, a seeded in-memory store and a context bound to both.

The seeded graph:

    user/1 --friends--> user/2          (hasMany <-> hasMany)
    user/1, user/2 --company--> company/1 (hasOne <-> hasMany)
    user/1 --pets--> animal/1, animal/2   (hasMany <-> belongsTo)
    animal/1 --toys--> toy/1              (hasMany <-> belongsTo)
    user/1 --passport--> passport/1       (hasOne <-> hasOne)
    user/1 --blogs--> blog/1              (hasMany <-> belongsTo)
    blog/1 --tags--> tag/1                (hasMany <-> hasMany)
    user/1 --profile--> profile/1         (hasOne <-> belongsTo)
    company/1 --brands--> brand/1         (hasMany <-> belongsTo)

user/3, passport/2, animal/3 (owned by user/2), tag/2 and company/2 are
unrelated spares.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import pytest_asyncio

# Add the src directory to the Python path so the package imports without installing it
project_root = Path(__file__).parent.parent
src_dir = project_root / "src"

if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from linkguard.context import LinkContext  # noqa: E402
from linkguard.schema.declarations import belongs_to, has_many, has_one  # noqa: E402
from linkguard.schema.registry import DescriptorRegistry  # noqa: E402
from linkguard.store.in_memory import InMemoryDocumentStore  # noqa: E402


SCHEMAS: Dict[str, Dict[str, Any]] = {
    "user": {
        "attributes": ["name", "email"],
        "relationships": {
            "friends": has_many("user", "friends"),
            "company": has_one("company", "employees"),
            "pets": has_many("animal", "owner"),
            "passport": has_one("passport", "holder"),
            "blogs": has_many("blog", "author"),
            "profile": has_one("profile", "user"),
            "settings": {"embedded": True},
        },
    },
    "company": {
        "attributes": ["name"],
        "relationships": {
            "employees": has_many("user", "company"),
            "brands": has_many("brand", "company"),
        },
    },
    "animal": {
        "attributes": ["name", "species"],
        "relationships": {
            "owner": belongs_to("user", "pets"),
            "toys": has_many("toy", "animal"),
        },
    },
    "toy": {
        "attributes": ["name"],
        "relationships": {"animal": belongs_to("animal", "toys")},
    },
    "passport": {
        "attributes": ["number"],
        "relationships": {"holder": has_one("user", "passport")},
    },
    "blog": {
        "attributes": ["title"],
        "relationships": {
            "author": belongs_to("user", "blogs"),
            "tags": has_many("tag", "blogs"),
        },
    },
    "tag": {
        "attributes": ["label"],
        "relationships": {"blogs": has_many("blog", "tags")},
    },
    "profile": {
        "attributes": ["bio"],
        "relationships": {"user": belongs_to("user", "profile")},
    },
    "brand": {
        "attributes": ["name"],
        "relationships": {"company": belongs_to("company", "brands")},
    },
}

PointerSpec = Union[str, List[str], Dict[str, Any], List[Dict[str, Any]], None]


def _pointer(value: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(value, dict):
        return {"archived": False, "related": True, **value}
    return {"id": value, "archived": False, "related": True}


def make_document(
    record_id: str,
    attributes: Optional[Dict[str, Any]] = None,
    archived: bool = False,
    **relationships: PointerSpec,
) -> Dict[str, Any]:
    """Build a raw stored document; lists become pointer arrays, strings single pointers."""
    return {
        "id": record_id,
        "attributes": dict(attributes or {}),
        "relationships": {
            name: (
                [_pointer(item) for item in value]
                if isinstance(value, list)
                else (_pointer(value) if value is not None else None)
            )
            for name, value in relationships.items()
        },
        "meta": {"archived": archived},
    }


def seed_graph(store: InMemoryDocumentStore) -> None:
    store.seed("user", [
        make_document(
            "1", {"name": "Dylan"},
            friends=["2"], company="1", pets=["1", "2"], passport="1", blogs=["1"], profile="1",
        ),
        make_document("2", {"name": "Cai"}, friends=["1"], company="1", pets=["3"], blogs=[]),
        make_document("3", {"name": "Kim"}, friends=[], pets=[], blogs=[]),
    ])
    store.seed("company", [
        make_document("1", {"name": "Acme"}, employees=["1", "2"], brands=["1"]),
        make_document("2", {"name": "Globex"}, employees=[], brands=[]),
    ])
    store.seed("animal", [
        make_document("1", {"name": "Rex"}, owner="1", toys=["1"]),
        make_document("2", {"name": "Tom"}, owner="1", toys=[]),
        make_document("3", {"name": "Kit"}, owner="2", toys=[]),
    ])
    store.seed("toy", [make_document("1", {"name": "Ball"}, animal="1")])
    store.seed("passport", [
        make_document("1", {"number": "A1"}, holder="1"),
        make_document("2", {"number": "B2"}),
    ])
    store.seed("blog", [make_document("1", {"title": "Hello"}, author="1", tags=["1"])])
    store.seed("tag", [
        make_document("1", {"label": "intro"}, blogs=["1"]),
        make_document("2", {"label": "misc"}, blogs=[]),
    ])
    store.seed("profile", [make_document("1", {"bio": "hi"}, user="1")])
    store.seed("brand", [make_document("1", {"name": "Roadrunner"}, company="1")])


@pytest.fixture
def schemas() -> Dict[str, Dict[str, Any]]:
    return SCHEMAS


@pytest.fixture
def registry() -> DescriptorRegistry:
    return DescriptorRegistry.build(SCHEMAS)


@pytest.fixture
def document_factory() -> Callable[..., Dict[str, Any]]:
    return make_document


@pytest_asyncio.fixture()
async def store():
    """Opened in-memory store seeded with the shared graph."""
    memory_store = InMemoryDocumentStore({"operation_policy": {"timeout_seconds": 2.0, "retry": {"attempts": 1}}})
    await memory_store.open()
    seed_graph(memory_store)
    yield memory_store
    await memory_store.close()


@pytest_asyncio.fixture()
async def context(store, registry):
    """LinkContext over the seeded store."""
    yield LinkContext(store, registry)
