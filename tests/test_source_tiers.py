import pytest

from kaeva.models import SourceReference, Stance
from kaeva.services.source_tiers import (
    PROMPT_DOMAINS_PER_TIER,
    UNRANKED_LABEL,
    SourceTierTable,
    assess_sources,
    classify_source,
    default_table,
)
from kaeva.utils.exceptions import ConfigurationError


@pytest.fixture
def small_table():
    return SourceTierTable.from_mapping(
        {
            1: {"label": "Primary", "trust": "highest", "weight": 1.0, "domains": ["who.int"]},
            2: {"label": "Wire", "trust": "very high", "weight": 0.85, "domains": ["reuters.com"]},
        }
    )


@pytest.mark.parametrize(
    "url,tier,weight",
    [
        ("https://www.reuters.com/world/some-story", 2, 0.85),
        ("https://snopes.com/fact-check/flat-earth/", 1, 1.0),
        ("https://pubmed.ncbi.nlm.nih.gov/12345/", 1, 1.0),
        ("https://edition.cnn.com/2024/01/01/politics/story", 4, 0.4),
        ("http://WWW.NYTIMES.COM/2024/01/01/us/story.html", 3, 0.65),
    ],
)
def test_classify_known_domains(url, tier, weight):
    info = classify_source(url)
    assert info is not None
    assert info.tier == tier
    assert info.weight == weight


@pytest.mark.parametrize(
    "url",
    [
        "https://notreuters.com/article",
        "https://fakereuters.com",
        "https://reuters.com.evil.example/article",
        "https://someblog.example/post",
        "not a url",
        "",
        None,
    ],
)
def test_classify_unranked_or_malformed(url):
    assert classify_source(url) is None


def test_subdomain_matches_parent(small_table):
    assert small_table.classify("https://apps.who.int/page").tier == 1
    assert small_table.classify("https://who.int.example/page") is None


def test_overlapping_domains_rejected_at_load():
    with pytest.raises(ConfigurationError) as exc_info:
        SourceTierTable.from_mapping(
            {
                1: {"label": "A", "weight": 1.0, "domains": ["example.com"]},
                2: {"label": "B", "weight": 0.5, "domains": ["Example.com"]},
            }
        )
    assert "example.com" in exc_info.value.message


def test_invalid_tier_definition_rejected():
    with pytest.raises(ConfigurationError):
        SourceTierTable.from_mapping({1: {"label": "A", "weight": 2.0, "domains": []}})
    with pytest.raises(ConfigurationError):
        SourceTierTable.from_mapping({1: {"weight": 1.0}})
    with pytest.raises(ConfigurationError):
        SourceTierTable.from_mapping({})


def test_packaged_table_has_four_tiers_with_expected_weights():
    table = default_table()
    assert [info.weight for info in table.tiers.values()] == [1.0, 0.85, 0.65, 0.4]
    assert table.weight_for(3) == 0.65
    assert table.weight_for(None) is None
    assert table.weight_for(7) is None


def test_priority_text_lists_leading_domains_per_tier():
    table = default_table()
    text = table.priority_text()

    for tier, info in table.tiers.items():
        assert f"TIER {tier} - {info.label}" in text
    first_tier = table.domains[1]
    assert ", ".join(first_tier[:PROMPT_DOMAINS_PER_TIER]) in text
    assert first_tier[PROMPT_DOMAINS_PER_TIER] not in text.split("TIER 2")[0]
    assert "UNRANKED" in text


def test_annotate_uses_fallback_host_for_redirect_urls(small_table):
    source = SourceReference(
        title="reuters.com",
        url="https://vertexaisearch.cloud.google.com/grounding-api-redirect/AbC123",
    )
    annotated = small_table.annotate(source, fallback_host="reuters.com")

    assert annotated.tier == 2
    assert annotated.tier_label == "Wire"
    assert annotated.weight == 0.85
    # original is untouched
    assert source.tier is None


def test_annotate_unranked(small_table):
    annotated = small_table.annotate(SourceReference(url="https://someblog.example/x"))
    assert annotated.tier is None
    assert annotated.tier_label == UNRANKED_LABEL
    assert annotated.weight is None


def test_assess_sources_orders_by_tier_and_keeps_ties_stable():
    sources = [
        SourceReference(url="a", tier=None, stance=Stance.SUPPORTS),
        SourceReference(url="b", tier=3),
        SourceReference(url="c", tier=1),
        SourceReference(url="d", tier=3),
        SourceReference(url="e", tier=None),
    ]
    assert [s.url for s in assess_sources(sources)] == ["c", "b", "d", "a", "e"]


def test_weight_is_not_serialized():
    wire = SourceReference(url="https://reuters.com/x", tier=2, tier_label="Wire", weight=0.85).to_wire()
    assert "weight" not in wire
    assert wire["tierLabel"] == "Wire"
