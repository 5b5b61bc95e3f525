import pytest

from tome.core import OtherError, Tier
from tome.index import DEFAULT_WRITER_BUFFER_BYTES, Index


def _fill(index):
    writer = index.writer(15_000_000)
    writer.add(
        1,
        "Photon",
        "A photon is an elementary particle, a quantum of the electromagnetic field. "
        "Photons are massless and travel at the speed of light.",
        Tier.HOT,
    )
    writer.add(
        2,
        "Electron",
        "An electron is a subatomic particle whose electric charge is negative. "
        "Electrons orbit atomic nuclei.",
        Tier.WARM,
    )
    writer.add(
        3,
        "Quark",
        "A quark is an elementary particle and a fundamental constituent of matter. "
        "Quarks combine to form composite particles called hadrons.",
        Tier.WARM,
    )
    writer.add(
        4,
        "Higgs boson",
        "The Higgs boson is an elementary particle in the Standard Model. "
        "Its existence was confirmed at the Large Hadron Collider in 2012.",
        Tier.COLD,
    )
    writer.add(
        5,
        "Cooking",
        "Cooking is the art of preparing food for consumption with the use of heat.",
        Tier.COLD,
    )
    writer.commit()
    return index


@pytest.fixture
def idx():
    return _fill(Index.create_in_ram())


def _titles(hits):
    return [h.title for h in hits]


def test_query_finds_relevant_articles(idx):
    hits = idx.search("photon", 10, [])
    assert hits
    assert hits[0].title == "Photon"


def test_body_match_returns_correct_article(idx):
    hits = idx.search("fundamental", 10, [])
    assert hits
    assert hits[0].title == "Quark"


def test_unrelated_query_returns_empty(idx):
    assert idx.search("unicycle", 10, []) == []


def test_ranking_puts_more_relevant_doc_first(idx):
    hits = idx.search("elementary particle", 10, [])
    assert len(hits) >= 3
    for h in hits:
        assert h.score > 0.0


def test_tier_filter_restricts_results(idx):
    all_titles = _titles(idx.search("particle", 10, []))
    assert "Photon" in all_titles
    assert "Electron" in all_titles
    assert "Higgs boson" in all_titles

    warm_titles = _titles(idx.search("particle", 10, [Tier.WARM]))
    assert "Electron" in warm_titles
    assert "Quark" in warm_titles
    assert "Photon" not in warm_titles
    assert "Higgs boson" not in warm_titles

    hot_or_cold = _titles(idx.search("particle", 10, [Tier.HOT, Tier.COLD]))
    assert "Photon" in hot_or_cold
    assert "Higgs boson" in hot_or_cold
    assert "Electron" not in hot_or_cold
    assert "Quark" not in hot_or_cold


def test_limit_caps_returned_hits(idx):
    assert len(idx.search("particle", 2, [])) <= 2


def test_search_returns_tier_correctly_in_hits(idx):
    hits = idx.search("Higgs", 10, [])
    higgs = next(h for h in hits if h.title == "Higgs boson")
    assert higgs.tier is Tier.COLD
    assert higgs.page_id == 4


def test_scores_are_sorted_descending(idx):
    scores = [h.score for h in idx.search("elementary particle quark", 10, [])]
    assert scores == sorted(scores, reverse=True)


def test_phrase_query_matches_consecutive_terms(idx):
    assert _titles(idx.search('"speed of light"', 10, [])) == ["Photon"]
    assert idx.search('"light of speed"', 10, []) == []


def test_field_query_restricts_to_field(idx):
    assert _titles(idx.search("title:quark", 10, [])) == ["Quark"]


def test_tier_field_query(idx):
    assert sorted(_titles(idx.search("tier:warm", 10, []))) == ["Electron", "Quark"]


def test_excluded_term_removes_documents(idx):
    titles = _titles(idx.search("particle -photon", 10, []))
    assert "Photon" not in titles
    assert "Electron" in titles


def test_required_term_must_match(idx):
    assert _titles(idx.search("+quark particle", 10, [])) == ["Quark"]


@pytest.mark.parametrize("query", ['"unbalanced', "title:", ":", "nosuchfield:x", "- x"])
def test_malformed_queries_yield_no_hits(idx, query):
    assert idx.search(query, 10, []) == []


def test_empty_query_yields_no_hits(idx):
    assert idx.search("", 10, []) == []


def test_zero_limit_is_rejected(idx):
    with pytest.raises(ValueError):
        idx.search("photon", 0, [])


def test_uncommitted_documents_are_invisible():
    index = Index.create_in_ram()
    writer = index.writer(DEFAULT_WRITER_BUFFER_BYTES)
    writer.add(7, "Neutrino", "A neutrino is light.", Tier.HOT)
    assert index.search("neutrino", 10, []) == []
    writer.commit()
    assert _titles(index.search("neutrino", 10, [])) == ["Neutrino"]


def test_writer_rejects_small_budget():
    with pytest.raises(OtherError):
        Index.create_in_ram().writer(1024)


def test_writer_rejects_negative_page_id():
    writer = Index.create_in_ram().writer(DEFAULT_WRITER_BUFFER_BYTES)
    with pytest.raises(OtherError):
        writer.add(-1, "Bad", "bad", Tier.HOT)


def test_name_is_bm25(idx):
    assert idx.name() == "bm25"


def test_on_disk_index_round_trips(tmp_path):
    _fill(Index.create_in_dir(tmp_path))
    reopened = Index.open_dir(tmp_path)
    hits = reopened.search("fundamental", 10, [])
    assert _titles(hits) == ["Quark"]
    assert hits[0].tier is Tier.WARM


def test_create_in_dir_refuses_existing_index(tmp_path):
    Index.create_in_dir(tmp_path)
    with pytest.raises(OtherError):
        Index.create_in_dir(tmp_path)


def test_open_dir_creates_empty_index(tmp_path):
    index = Index.open_dir(tmp_path)
    assert index.search("photon", 10, []) == []
    _fill(index)
    assert _titles(Index.open_dir(tmp_path).search("photon", 10, []))[0] == "Photon"


def test_open_missing_dir_errors(tmp_path):
    with pytest.raises(OtherError):
        Index.open_dir(tmp_path / "missing")