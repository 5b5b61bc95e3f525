# tome

Building blocks for an offline encyclopedia reader:

- **Modules** (`tome.spec`, `tome.store`, `tome.resolver`): named
  collections of articles. A module is defined by categories, each with a
  recursion depth, and/or by explicit titles. Specs round-trip through TOML.
  A SQLite-backed `ModuleStore` records which modules are installed.
- **Full-text search** (`tome.schema`, `tome.index`): a BM25-ranked index
  over article titles and bodies, with filtering by storage tier.
- **Dump parsers** (`tome.category_ingest`, `tome.geotag_ingest`,
  `tome.redirect_ingest`, built on `tome.sqldump`): readers for the gzipped
  MySQL dumps `categorylinks.sql.gz`, `geo_tags.sql.gz` and
  `redirect.sql.gz`.

Shared types are in `tome.core`:

- `Tier`: `HOT`, `WARM`, `COLD` or `EVICTED`.
- `SearchHit`.
- The error classes. `TomeError` is the base class, and `OtherError`,
  `StorageError` and `NotFoundError` derive from it.

## Installation

```
pip install .
```

To get the test dependencies, install with `pip install .[test]`.

## Modules

```python
from tome.core import Tier
from tome.spec import CategorySpec, ModuleSpec
from tome.store import ModuleStore

spec = ModuleSpec(
    id="physics-101",
    name="Physics 101",
    description="Intro physics",
    default_tier=Tier.WARM,
    categories=[CategorySpec(name="Physics", depth=1)],
    explicit_titles=["Newton's laws"],
)
spec.validate()
text = spec.to_toml()
assert ModuleSpec.from_toml(text) == spec

with ModuleStore.open_in_memory() as store:
    store.install(spec, ["Photon", "Electron"])
    print(store.get("physics-101").member_count)   # 2
    print(store.members("physics-101"))            # ['Electron', 'Photon']
    print(store.modules_for_title("Photon"))       # ['physics-101']
    store.uninstall("physics-101")
```

A minimal TOML definition looks like this:

```toml
id = "tiny"
name = "Tiny module"
default_tier = "cold"
explicit_titles = ["Photon"]
```

`validate()` raises `tome.core.OtherError` in these cases:

- The id is empty.
- The id is not ASCII kebab-case, which means it may use only lower-case letters, digits and `-`.
- The name is blank.
- The module defines neither a category nor an explicit title.
- A category has a depth greater than 10.

`from_toml` raises `OtherError` when it cannot parse or decode the text. `install` validates the spec before it writes anything.

`ModuleStore` behaves as follows:

- `ModuleStore.open(path)` keeps the store in a SQLite file.
- `open_in_memory()` makes a private store that is lost when it closes.
- A second `install` with the same id replaces that module's member list. It keeps the original install time.
- `list()` returns the installed modules ordered by name.
- `uninstall` of an unknown id raises `tome.core.NotFoundError`.
- Database failures raise `tome.core.StorageError`.

`tome.resolver.CategoryResolver` is the abstract interface for expanding a category into article titles. Its `resolve(category, depth)` method is `async`. `NoopResolver` always returns an empty list. The package has no resolver that fetches real category contents.

## Search

```python
from tome.core import Tier
from tome.index import Index

index = Index.create_in_ram()
writer = index.writer(15_000_000)
writer.add(1, "Photon", "A photon is an elementary particle.", Tier.HOT)
writer.add(2, "Electron", "An electron is a subatomic particle.", Tier.WARM)
writer.commit()

for hit in index.search("particle", 10, [Tier.WARM]):
    print(hit.page_id, hit.title, hit.tier, hit.score)
```

Writers:

- `writer(buffer_bytes)` needs a budget of at least `MIN_WRITER_BUFFER_BYTES` (15,000,000). A smaller budget raises `OtherError`.
- `DEFAULT_WRITER_BUFFER_BYTES` is 50 MiB.
- Added documents become searchable only after `commit()`.

Indexes on disk:

- `Index.create_in_dir(path)` makes a new index in an existing directory.
- `Index.open_dir(path)` opens the index in a directory, or creates an empty one if there is none.
- An index on disk is stored as `tome-index.json` in its directory.
- Each commit rewrites that file atomically.

Queries:

- Titles and bodies are split into lower-cased alphanumeric tokens by `tome.schema.tokenize`.
- A query may hold plain words, `"quoted phrases"`, `field:value` terms and `+`/`-` prefixes. The fields are `title`, `body`, `tier` and `page_id`. A `+` term is required and a `-` term is excluded.
- A query the parser rejects returns no hits and does not raise. Examples are an unbalanced quote or an unknown field.
- An empty tier filter matches every tier.
- A `limit` below 1 raises `ValueError`.
- Hits are ordered by score, with the best hit first.

## Dump parsers

Each parser module has two functions:

- `parse_str(content, callback)` works on text that is already decompressed.
- `parse_file(path, callback)` reads a gzipped file.

Both call the callback once for each record they accept, and both return the number of accepted records.

```python
from tome import category_ingest, geotag_ingest, redirect_ingest

links = []
category_ingest.parse_file("categorylinks.sql.gz", links.append)

tags = []
geotag_ingest.parse_file("geo_tags.sql.gz", tags.append)

redirects = []
redirect_ingest.parse_str(
    "INSERT INTO `redirect` VALUES (1,0,'United_States','','');",
    redirects.append,
)
print(redirects[0].target_title)   # United States
```

- **categorylinks** yields `CategoryLink(from_page_id, category, kind)`. `kind` is a `CategoryMemberKind`: `PAGE`, `SUBCAT` or `FILE`. Rows with an empty or `NULL` category, or with an unknown kind, are skipped.
- **geo_tags** yields `Geotag(page_id, lat, lon, primary, kind)`. Rows with non-finite coordinates, or coordinates out of range, are skipped. A `NULL` or empty type gives `kind=None`.
- **redirect** yields `Redirect(from_page_id, target_title)`. It keeps only namespace-0 redirects with an empty interwiki column. Underscores in the title become spaces.

Parsing behaviour:

- Statements for other tables are ignored.
- Quoted strings may contain backslash escapes such as `\'`.
- An unterminated tuple raises `OtherError`.
- The file is opened read-only and decompressed whole into memory.
- A file that is missing or is not valid gzip raises `OtherError`.
- Text that is not UTF-8 also raises `OtherError`.

## What this package does not do

- It does not store article text or articles' tiers.
- It does not read or render articles.
- It does not fetch anything over the network.
- It does not save the records that the dump parsers produce; they are only handed to your callback.
- It has no command-line program.