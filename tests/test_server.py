import pytest

from tokenstunt.models import CodeBlockKind, Store
from tokenstunt.server import TokenStuntServer, ToolError


def make_store():
    store = Store.open_in_memory()
    repo_id = store.ensure_repo("/test", "test")
    file_id = store.upsert_file(repo_id, "src/auth.ts", 111, "typescript", 0)
    auth_id = store.insert_code_block(
        file_id,
        "authenticateUser",
        CodeBlockKind.FUNCTION,
        1,
        10,
        "function authenticateUser(token: string): User { ... }",
        "function authenticateUser(token: string): User",
        "",
        None,
    )
    store.insert_code_block(
        file_id,
        "UserProfile",
        CodeBlockKind.CLASS,
        12,
        30,
        "class UserProfile { name: string; }",
        "class UserProfile",
        "",
        None,
    )
    validate_id = store.insert_code_block(
        file_id,
        "validateToken",
        CodeBlockKind.FUNCTION,
        32,
        40,
        "function validateToken(t: string): boolean { ... }",
        "function validateToken(t: string): boolean",
        "",
        None,
    )
    store.insert_dependency(auth_id, validate_id, "validateToken", "call")
    return store


@pytest.fixture
def server():
    return TokenStuntServer(make_store(), "/test", False)


class FakeEmbedder:
    def __init__(self, dims, model):
        self.dims = dims
        self.model = model

    async def embed_batch(self, texts):
        return [[0.1] * self.dims for _ in texts]

    def dimensions(self):
        return self.dims

    def model_name(self):
        return self.model

    async def health_check(self):
        return None


class FailingEmbedder(FakeEmbedder):
    async def embed_batch(self, texts):
        raise RuntimeError("embedding service down")


def test_server_info():
    server = TokenStuntServer(Store.open_in_memory(), "/test", False)
    info = server.get_info()
    assert info["serverInfo"]["name"] == "tokenstunt"
    assert "ts_search" in info["capabilities"]["tools"]


@pytest.mark.asyncio
async def test_ts_search_returns_results(server):
    text = await server.ts_search("authenticate")
    assert "authenticateUser" in text


@pytest.mark.asyncio
async def test_ts_search_no_results(server):
    assert await server.ts_search("zzzznonexistent") == "No results found."


@pytest.mark.asyncio
async def test_ts_search_with_invalid_symbol_kind(server):
    text = await server.ts_search("authenticate", symbol_kind="invalid_kind_xyz")
    assert "authenticateUser" in text


@pytest.mark.asyncio
async def test_ts_search_offset_adds_footer(server):
    text = await server.ts_search("user", offset=1)
    assert text.endswith("Showing 1 of 2 results (offset 1)")


@pytest.mark.asyncio
async def test_ts_search_no_footer_without_offset(server):
    text = await server.ts_search("user")
    assert "Showing" not in text
    assert "2 results" in text


@pytest.mark.asyncio
async def test_ts_search_with_embedder():
    store = Store.open_in_memory()
    repo_id = store.ensure_repo("/test", "test")
    file_id = store.upsert_file(repo_id, "src/auth.ts", 111, "typescript", 0)
    block_id = store.insert_code_block(
        file_id,
        "authenticateUser",
        CodeBlockKind.FUNCTION,
        1,
        10,
        "function authenticateUser(token: string): User { ... }",
        "function authenticateUser(token: string): User",
        "",
        None,
    )
    store.insert_embedding(block_id, [0.1] * 64, "fake-model")
    server = TokenStuntServer(store, "/test", True, FakeEmbedder(64, "fake-model"))
    text = await server.ts_search("authenticate")
    assert "authenticateUser" in text


@pytest.mark.asyncio
async def test_ts_search_embedder_failure_falls_back():
    server = TokenStuntServer(make_store(), "/test", True, FailingEmbedder(64, "fake-model"))
    text = await server.ts_search("authenticate")
    assert "authenticateUser" in text


@pytest.mark.asyncio
async def test_ts_search_store_error_raises_tool_error():
    store = make_store()
    store.write_transaction(lambda conn: conn.execute("DROP TABLE IF EXISTS code_blocks_fts"))
    server = TokenStuntServer(store, "/test")
    with pytest.raises(ToolError):
        await server.ts_search("anything")


@pytest.mark.asyncio
async def test_ts_symbol_found(server):
    text = await server.ts_symbol("authenticateUser")
    assert "authenticateUser" in text
    assert "src/auth.ts" in text
    assert text.startswith("\u25c6 Symbol  authenticateUser")


@pytest.mark.asyncio
async def test_ts_symbol_not_found(server):
    text = await server.ts_symbol("nonexistentSymbol")
    assert text == "Symbol 'nonexistentSymbol' not found."


@pytest.mark.asyncio
async def test_ts_symbol_file_filter_excludes(server):
    text = await server.ts_symbol("authenticateUser", file="other/")
    assert "not found" in text


@pytest.mark.asyncio
async def test_ts_context_both(server):
    text = await server.ts_context("authenticateUser", direction="both")
    assert "authenticateUser" in text
    assert "Dependencies" in text
    assert "validateToken" in text


@pytest.mark.asyncio
async def test_ts_context_dependencies_only(server):
    text = await server.ts_context("authenticateUser", direction="dependencies")
    assert "Dependencies" in text
    assert "validateToken" in text
    assert "Dependents" not in text


@pytest.mark.asyncio
async def test_ts_context_dependents_only(server):
    text = await server.ts_context("validateToken", direction="dependents")
    assert "Dependents" in text
    assert "authenticateUser" in text
    assert "Dependencies" not in text


@pytest.mark.asyncio
async def test_ts_context_not_found(server):
    text = await server.ts_context("nonexistentSymbol")
    assert "not found" in text


@pytest.mark.asyncio
async def test_ts_context_no_dependencies(server):
    text = await server.ts_context("UserProfile", direction="dependencies")
    assert "UserProfile" in text
    assert "Dependencies" not in text


@pytest.mark.asyncio
async def test_ts_overview(server):
    text = await server.ts_overview()
    assert "\u25c6 Overview" in text
    assert "/test" in text
    assert "Languages" in text
    assert "typescript" in text
    assert "Modules" in text
    assert "Public API" in text
    assert "authenticateUser" in text


@pytest.mark.asyncio
async def test_ts_overview_uses_cache(server):
    first = await server.ts_overview()
    second = await server.ts_overview()
    assert first == second
    assert server.store.get_overview_cache("", 1) == first


@pytest.mark.asyncio
async def test_ts_overview_many_symbols():
    store = Store.open_in_memory()
    repo_id = store.ensure_repo("/test", "test")
    file_id = store.upsert_file(repo_id, "src/many.ts", 111, "typescript", 0)
    for i in range(25):
        store.insert_code_block(
            file_id,
            f"symbol{i}",
            CodeBlockKind.FUNCTION,
            i * 10 + 1,
            i * 10 + 5,
            f"function symbol{i}() {{}}",
            f"function symbol{i}()",
            "",
            None,
        )
    server = TokenStuntServer(store, "/test", False)
    text = await server.ts_overview()
    assert "... 5 more" in text


@pytest.mark.asyncio
async def test_ts_overview_with_entry_points():
    store = Store.open_in_memory()
    repo_id = store.ensure_repo("/test", "test")
    file_id = store.upsert_file(repo_id, "src/index.ts", 111, "typescript", 0)
    store.insert_code_block(
        file_id,
        "startApp",
        CodeBlockKind.FUNCTION,
        1,
        10,
        "function startApp() {}",
        "function startApp()",
        "",
        None,
    )
    server = TokenStuntServer(store, "/test", False)
    text = await server.ts_overview()
    assert "Entry Points" in text


@pytest.mark.asyncio
async def test_ts_overview_with_scope(server):
    text = await server.ts_overview(scope="src/")
    assert "Overview" in text


@pytest.mark.asyncio
async def test_ts_overview_empty_store():
    server = TokenStuntServer(Store.open_in_memory(), "/empty", False)
    text = await server.ts_overview()
    assert "Overview" in text
    assert "Languages" not in text
    assert "Modules" not in text
    assert "Public API" not in text


@pytest.mark.asyncio
async def test_ts_setup(server):
    text = await server.ts_setup()
    assert "Setup" in text
    assert "Files" in text
    assert "Code Blocks" in text
    assert "Dependencies" in text


@pytest.mark.asyncio
async def test_ts_impact_found(server):
    text = await server.ts_impact("validateToken")
    assert "authenticateUser" in text


@pytest.mark.asyncio
async def test_ts_impact_not_found(server):
    text = await server.ts_impact("nonexistentSymbol")
    assert "No dependents found" in text


@pytest.mark.asyncio
async def test_ts_file_returns_symbols(server):
    text = await server.ts_file("src/auth.ts")
    assert "File" in text
    assert "authenticateUser" in text
    assert "UserProfile" in text
    assert "validateToken" in text
    assert "3 symbols" in text


@pytest.mark.asyncio
async def test_ts_file_filter_by_kind(server):
    text = await server.ts_file("src/auth.ts", kind="class")
    assert "UserProfile" in text
    assert "authenticateUser" not in text


@pytest.mark.asyncio
async def test_ts_file_not_found(server):
    text = await server.ts_file("nonexistent.ts")
    assert "No symbols found" in text


@pytest.mark.asyncio
async def test_ts_usages_found(server):
    text = await server.ts_usages("validateToken")
    assert "Usages" in text
    assert "authenticateUser" in text


@pytest.mark.asyncio
async def test_ts_usages_no_usages(server):
    text = await server.ts_usages("authenticateUser")
    assert "No usages found" in text


@pytest.mark.asyncio
async def test_ts_usages_symbol_not_found(server):
    text = await server.ts_usages("nonexistentSymbol")
    assert "not found" in text


@pytest.mark.asyncio
async def test_ts_usages_with_limit(server):
    text = await server.ts_usages("validateToken", limit=1)
    assert "Usages" in text
    assert "1 call sites" in text


@pytest.mark.asyncio
async def test_ts_usages_with_kind_filter(server):
    text = await server.ts_usages("validateToken", kind="function")
    assert "Usages" in text


@pytest.mark.asyncio
async def test_ts_usages_kind_mismatch_not_found(server):
    text = await server.ts_usages("validateToken", kind="class")
    assert text == "Symbol 'validateToken' not found."