import gzip
import os
import stat
from pathlib import Path

import pytest

from tome.core import OtherError
from tome.redirect_ingest import Redirect, parse_file, parse_str


def _collect(sql):
    redirects = []
    n = parse_str(sql, redirects.append)
    return n, redirects


def _read_only(path: Path):
    os.chmod(path, stat.S_IREAD)


def _writable(path: Path):
    os.chmod(path, stat.S_IREAD | stat.S_IWRITE)


def test_parses_a_single_insert_with_two_rows():
    sql = (
        "INSERT INTO `redirect` VALUES "
        "(123,0,'United_States','',''),"
        "(456,0,'Photon','','Section');"
    )
    n, redirects = _collect(sql)
    assert n == 2
    assert redirects[0].from_page_id == 123
    assert redirects[0].target_title == "United States"
    assert redirects[1].from_page_id == 456
    assert redirects[1].target_title == "Photon"


def test_skips_non_main_namespace():
    n, redirects = _collect("INSERT INTO `redirect` VALUES (789,1,'Some_Talk_Page','','');")
    assert n == 0
    assert redirects == []


def test_skips_interwiki_redirects():
    n, _ = _collect("INSERT INTO `redirect` VALUES (1,0,'Some_Page','enwiki','');")
    assert n == 0


def test_normalizes_underscores_to_spaces():
    _, redirects = _collect(
        "INSERT INTO `redirect` VALUES (1,0,'United_States_of_America','','');"
    )
    assert redirects[0].target_title == "United States of America"


def test_handles_apostrophe_in_title():
    _, redirects = _collect("INSERT INTO `redirect` VALUES (1,0,'Joan_d\\'Arc','','');")
    assert redirects[0].target_title == "Joan d'Arc"


def test_skips_empty_target_title():
    n, _ = _collect("INSERT INTO `redirect` VALUES (1,0,'','','');")
    assert n == 0


def test_skips_title_of_only_underscores():
    n, _ = _collect("INSERT INTO `redirect` VALUES (1,0,'___','','');")
    assert n == 0


def test_ignores_other_inserts():
    sql = (
        "INSERT INTO `something_else` VALUES (1,2,3); "
        "INSERT INTO `redirect` VALUES (42,0,'Target_Page','','');"
    )
    _, redirects = _collect(sql)
    assert redirects == [Redirect(from_page_id=42, target_title="Target Page")]


def test_short_tuple_and_bad_ids_are_skipped():
    sql = (
        "INSERT INTO `redirect` VALUES (1,0,'Short'),"
        "(x,0,'Bad_From','',''),(2,zero,'Bad_Ns','','');"
    )
    n, _ = _collect(sql)
    assert n == 0


def test_unterminated_tuple_raises():
    with pytest.raises(OtherError):
        parse_str("INSERT INTO `redirect` VALUES (1,0,'Open", lambda r: None)


def test_parse_file_does_not_mutate_source(tmp_path):
    sql = b"INSERT INTO `redirect` VALUES (1,0,'United_States','',''),(2,0,'Photon','','Section');\n"
    path = tmp_path / "redirect.sql.gz"
    path.write_bytes(gzip.compress(sql))
    before = path.read_bytes()
    _read_only(path)
    try:
        redirects = []
        n = parse_file(path, redirects.append)
    finally:
        _writable(path)
    assert n == 2
    assert [r.target_title for r in redirects] == ["United States", "Photon"]
    assert path.read_bytes() == before


def test_parse_file_errors_on_truncated_gzip(tmp_path):
    path = tmp_path / "redirect.sql.gz"
    path.write_bytes(b"\x1f\x8b\x08\x00truncated mid-stream")
    before = path.read_bytes()
    _read_only(path)
    try:
        with pytest.raises(OtherError, match="decompress redirect dump"):
            parse_file(path, lambda r: None)
    finally:
        _writable(path)
    assert path.read_bytes() == before


def test_parse_file_errors_on_missing_file(tmp_path):
    with pytest.raises(OtherError, match="open redirect dump"):
        parse_file(tmp_path / "absent.sql.gz", lambda r: None)