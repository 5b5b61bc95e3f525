import pytest

from tome.resolver import CategoryResolver, NoopResolver


@pytest.mark.asyncio
async def test_noop_resolver_returns_empty():
    resolver = NoopResolver()
    assert await resolver.resolve("Physics", 2) == []


@pytest.mark.asyncio
async def test_noop_resolver_ignores_depth():
    resolver = NoopResolver()
    assert await resolver.resolve("Physics", 0) == await resolver.resolve("Physics", 10)


def test_abstract_resolver_cannot_be_instantiated():
    with pytest.raises(TypeError):
        CategoryResolver()


@pytest.mark.asyncio
async def test_noop_resolver_returns_a_fresh_list_each_call():
    resolver = NoopResolver()
    first = await resolver.resolve("Physics", 1)
    first.append("Photon")
    second = await resolver.resolve("Physics", 1)
    assert second == []