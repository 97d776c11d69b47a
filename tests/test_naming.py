from __future__ import annotations

import pytest

from src.site_attendance.site_attendance.naming.collation import collation_key
from src.site_attendance.site_attendance.naming.fuzzy import levenshtein, rank, suggest
from src.site_attendance.site_attendance.naming.normalizer import NameNormalizer, default_normalizer


@pytest.mark.parametrize(
    "raw",
    [
        "株式会社 山田工業",
        "山田工業(株)",
        "（株）山田工業",
        "有限会社　佐藤内装",
        "Acme Corporation",
        "株式会社 株式会社 ABC",
        " Co., Ltd. Foo Inc. ",
        "",
        "Corp",
    ],
)
def test_normalize_is_idempotent(raw):
    once = default_normalizer.normalize(raw)
    assert default_normalizer.normalize(once) == once


def test_normalize_strips_company_forms_and_spaces():
    n = default_normalizer
    assert n.normalize("株式会社 山田工業") == "山田工業"
    assert n.normalize("山田工業(株)") == "山田工業"
    assert n.normalize("有限会社　佐藤 内装") == "佐藤内装"
    assert n.normalize("Acme Corp") == n.normalize("Acme Corporation") == "acme"


def test_ascii_tokens_only_strip_on_word_boundary():
    n = default_normalizer
    assert n.normalize("Corpus Inc.") == "corpus"
    assert n.strip_legal_suffix("Corpus") == "Corpus"


def test_strip_legal_suffix_keeps_text_when_only_a_token():
    assert default_normalizer.strip_legal_suffix("株式会社") == "株式会社"


def test_custom_token_list():
    n = NameNormalizer(tokens=["組"])
    assert n.normalize("山田組") == "山田"
    assert n.normalize("株式会社山田") == "株式会社山田"


def test_mapping_key_drops_trailing_number():
    n = default_normalizer
    assert n.normalize_contractor_label("山田工業 2") == "山田工業"
    assert n.normalize_contractor_label("山田工業　１２") == "山田工業"
    assert n.normalize_mapping_key("株式会社山田工業 3") == n.normalize("山田工業")


def test_levenshtein():
    assert levenshtein("", "abc") == 3
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("山田", "山田") == 0


def test_suggest_returns_at_most_three_closest_first():
    candidates = ["山田工業所", "佐藤内装", "山田興業", "X"]
    result = suggest("山田工業", candidates)
    assert result == ["山田工業所", "山田興業", "佐藤内装"]

    distances = [d for _, d in rank("山田工業", candidates)]
    assert distances == sorted(distances)


def test_suggest_exact_candidate_has_zero_distance():
    assert rank("佐藤内装", ["佐藤内装"]) == [("佐藤内装", 0)]
    assert suggest("anything", []) == []


def test_collation_key_folds_kana_and_width():
    assert collation_key("アイ")[0] == collation_key("あい")[0]
    assert collation_key("ＡＢＣ")[0] == collation_key("abc")[0]
    names = ["さとう", "アオキ", "いとう"]
    assert sorted(names, key=collation_key) == ["アオキ", "いとう", "さとう"]
