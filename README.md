# tokenstunt

Search an indexed codebase at the level of symbols: functions, classes,
interfaces and the like. Instead of whole files, it returns the exact bodies
of the matching symbols, their dependency graph and the places affected by a
change. Everything is kept in a SQLite database and reported as plain text.

It has no dependencies beyond the standard library. The Python build's
SQLite must include the FTS5 extension, as the usual builds do.

## Modules

- `tokenstunt.models`: `CodeBlockKind` (function, method, class, struct,
  enum, interface, type_alias, constant, variable, module, trait, impl),
  `parse_kind()` to turn a name into a kind (or `None`), the `CodeBlock`
  record, and `Store`, the SQLite index of repositories, files, code blocks,
  dependencies, embeddings and a cached overview. `Store.open_in_memory()`
  and `Store.open(path)` open it; writes such as `ensure_repo`,
  `upsert_file`, `insert_code_block`, `insert_dependency` and
  `insert_embedding` fill it.
- `tokenstunt.search`: `SearchEngine` runs a `SearchQuery` (text, optional
  scope path prefix, language, symbol kind, limit defaulting to 10, and an
  optional query embedding). Ranking is BM25 full-text search; compound
  identifiers such as `getUserById`, `auth.service` or `std::io` are split
  into their parts with `build_fts_query()`. When a query embedding is given
  and stored embeddings exist for the candidates, the BM25 score is blended
  with cosine similarity (`hybrid_alpha`, 0.4 by default, is the BM25
  weight). Each `SearchResult` carries its `SearchSource`.
- `tokenstunt.impact`: `walk_dependents()` walks breadth-first over the
  blocks depending on a symbol (depth 3 by default, never more than 5,
  cycles visited once); `format_impact()` groups them by depth and lists the
  affected files.
- `tokenstunt.overview`: `build_overview()` reports file and block counts,
  a language breakdown, modules by directory, up to 20 public symbols and
  entry-point files (`main.`, `index.`, `app.`, `mod.`, `lib.`).
- `tokenstunt.diagnostics`: `build_setup_report()` reports index health and
  embedding coverage.
- `tokenstunt.formatting` and `tokenstunt.render`: the text layouts and
  primitives (headers, bars, trees, fenced code blocks) used by all reports.
- `tokenstunt.server`: `TokenStuntServer` answers the tools `ts_search`,
  `ts_symbol`, `ts_context`, `ts_overview`, `ts_setup`, `ts_impact`,
  `ts_file` and `ts_usages`, each an `async` method returning text.
  Database failures are raised as `ToolError`. An optional `embedder`
  (anything matching the `Embedder` protocol) supplies query embeddings
  for hybrid search; if it fails, search falls back to BM25.

## Installation

```
pip install tokenstunt
```

For running the tests:

```
pip install "tokenstunt[test]"
pytest
```

## Example

```python
from tokenstunt.models import CodeBlockKind, Store
from tokenstunt.search import SearchEngine, SearchQuery

store = Store.open_in_memory()
repo_id = store.ensure_repo("/project", "project")
file_id = store.upsert_file(repo_id, "src/auth.ts", 111, "typescript", 0)
store.insert_code_block(
    file_id, "authenticateUser", CodeBlockKind.FUNCTION, 1, 10,
    "function authenticateUser(token: string): User { ... }",
    "function authenticateUser(token: string): User", "", None,
)

engine = SearchEngine(store)
for result in engine.search(SearchQuery(text="authenticate", limit=10)):
    print(result.block.name, round(result.score, 3), result.source)
```

Through the server:

```python
import asyncio
from tokenstunt.server import TokenStuntServer

server = TokenStuntServer(store, "/project")
print(asyncio.run(server.ts_search("authenticate")))
print(asyncio.run(server.ts_impact("authenticateUser")))
```

## Output

Every report is plain text for reading in a terminal or by an assistant: a
`◆ Title  subtitle` header, right-aligned key/value lines, tree sections
drawn with `├─` and `└─`, and fenced code blocks tagged with the source
language.

## What it does not do

- It does not walk directories or parse source files: the store is filled
  through the `Store` methods, by you or by your own indexer.
- It ships no embedding model or client; pass your own `embedder` to the
  server, or embeddings to `Store.insert_embedding` and `SearchQuery`.
- It has no command line and no network transport: `TokenStuntServer` is
  called from Python, and `get_info()` only returns its description as a
  dictionary.