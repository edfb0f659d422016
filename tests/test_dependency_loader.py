"""Tests for DependencyLoader with a fake resource client."""

import asyncio
import types

import pytest

from conftest import FakeResourceClient
from snippetbench.core.dependency_loader import DependencyLoader
from snippetbench.core.errors import DependencyError


URL = "https://example.com/lib.py"


class TestModuleMode:
    async def test_binds_default_attribute(self, make_dependency):
        client = FakeResourceClient({URL: "default = 42"})
        loader = DependencyLoader(client)

        await loader.load_dependencies([make_dependency(name="answer", url=URL)])

        assert loader.scope["answer"] == 42

    async def test_binds_module_without_default(self, make_dependency):
        client = FakeResourceClient({URL: "def double(x):\n    return x * 2\n"})
        loader = DependencyLoader(client)

        await loader.load_dependencies([make_dependency(name="helpers", url=URL)])

        module = loader.scope["helpers"]
        assert isinstance(module, types.ModuleType)
        assert module.double(2) == 4
        assert "double" not in loader.scope

    async def test_execution_failure_is_dependency_error(self, make_dependency):
        client = FakeResourceClient({URL: "raise RuntimeError('broken')"})
        loader = DependencyLoader(client)

        with pytest.raises(DependencyError) as exc_info:
            await loader.load_dependencies([make_dependency(name="broken", url=URL)])
        assert "Не удалось загрузить зависимости" in str(exc_info.value)


class TestGlobalScriptMode:
    async def test_resolves_global_name_and_reexposes(self, make_dependency):
        client = FakeResourceClient({URL: "lib = {'v': 1}"})
        loader = DependencyLoader(client)

        await loader.load_dependencies([
            make_dependency(name="mylib", url=URL, mode="global-script", global_name="lib"),
        ])

        assert loader.scope["mylib"] == {"v": 1}
        assert loader.scope["lib"] is loader.scope["mylib"]

    async def test_falls_back_to_name(self, make_dependency):
        client = FakeResourceClient({URL: "mylib = 5"})
        loader = DependencyLoader(client)

        await loader.load_dependencies([
            make_dependency(name="mylib", url=URL, mode="global-script", global_name="missing"),
        ])

        assert loader.scope["mylib"] == 5

    async def test_already_bound_global_skips_fetch(self, make_dependency):
        client = FakeResourceClient()
        loader = DependencyLoader(client, scope={"lib": 7})

        await loader.load_dependencies([
            make_dependency(name="mylib", url=URL, mode="global-script", global_name="lib"),
        ])

        assert client.calls == []
        assert loader.scope["mylib"] == 7

    async def test_missing_global_is_error(self, make_dependency):
        client = FakeResourceClient({URL: "something_else = 1"})
        loader = DependencyLoader(client)

        with pytest.raises(DependencyError):
            await loader.load_dependencies([
                make_dependency(name="mylib", url=URL, mode="global-script", global_name="lib"),
            ])


class TestMemoization:
    async def test_concurrent_loads_share_one_fetch(self, make_dependency):
        client = FakeResourceClient({URL: "default = object()"})
        loader = DependencyLoader(client)
        first = make_dependency(name="a", url=URL)
        second = make_dependency(name="b", url=URL)

        values = await asyncio.gather(loader.load_dependency(first), loader.load_dependency(second))

        assert len(client.calls) == 1
        assert values[0] is values[1]
        assert loader.scope["a"] is loader.scope["b"]

    async def test_repeated_load_uses_cache(self, make_dependency):
        client = FakeResourceClient({URL: "default = 1"})
        loader = DependencyLoader(client)
        dep = make_dependency(url=URL)

        await loader.load_dependencies([dep])
        await loader.load_dependencies([dep])

        assert len(client.calls) == 1
        assert loader.loaded_keys == [f"module:{URL}"]

    async def test_failed_load_is_retried(self, make_dependency):
        client = FakeResourceClient({URL: "default = 1"}, fail_times=1)
        loader = DependencyLoader(client)
        dep = make_dependency(name="flaky", url=URL)

        with pytest.raises(DependencyError):
            await loader.load_dependencies([dep])
        await loader.load_dependencies([dep])

        assert len(client.calls) == 2
        assert loader.scope["flaky"] == 1

    async def test_reset_clears_state(self, make_dependency):
        client = FakeResourceClient({URL: "default = 1"})
        loader = DependencyLoader(client)
        dep = make_dependency(name="one", url=URL)

        await loader.load_dependencies([dep])
        loader.reset()

        assert loader.scope == {}
        assert loader.loaded_keys == []
        await loader.load_dependencies([dep])
        assert len(client.calls) == 2


async def test_inactive_dependencies_are_skipped(make_dependency):
    client = FakeResourceClient()
    loader = DependencyLoader(client)

    await loader.load_dependencies([
        make_dependency(enabled=False),
        make_dependency(url="   "),
    ])

    assert client.calls == []


async def test_sibling_bindings_survive_failure(make_dependency):
    good_url = "https://example.com/good.py"
    client = FakeResourceClient({good_url: "default = 'ok'"})
    loader = DependencyLoader(client)

    with pytest.raises(DependencyError):
        await loader.load_dependencies([
            make_dependency(name="good", url=good_url),
            make_dependency(name="bad", url="https://example.com/missing.py"),
        ])

    assert loader.scope["good"] == "ok"
    assert "bad" not in loader.scope
