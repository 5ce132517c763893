"""
Stage-level tests: Normalizer, NewsDeduplicator, NewsScorer, aggregate.
"""

import time
from datetime import datetime, timedelta, timezone

from biowatch.news.aggregator import aggregate
from biowatch.news.dedup import NewsDeduplicator
from biowatch.news.normalizer import (
    Normalizer,
    clean_text,
    parse_published,
    strip_publisher_suffix,
    title_from_url,
    title_signature,
    truncate_words,
)
from biowatch.news.scorer import NewsScorer
from biowatch.schemas import (
    CompanyTarget,
    ConsolidatedNewsItem,
    KeywordRow,
    NewsCandidate,
    PlannedQuery,
    QueryKind,
    TimeRange,
)
from biowatch.search.runner import FetchOutcome

ROWS = [
    KeywordRow(keyword="biosimilar", sop_category="Market", business_category="Commercial", companies=["Sandoz"]),
    KeywordRow(keyword="interchangeability", sop_category="Regulatory", business_category="Regulatory"),
]
TARGETS = [CompanyTarget(label="Amgen", url="https://www.amgen.com/newsroom")]


def window(now):
    return TimeRange(preset="7d").resolve(now)


def keyword_query(*rows):
    return PlannedQuery(text="biosimilar", kind=QueryKind.KEYWORD, keyword_rows=tuple(rows))


# ════════════════════════════════════════════════════════════════════
# Normalizer helpers
# ════════════════════════════════════════════════════════════════════

def test_parse_published_accepts_common_shapes():
    expected = datetime(2025, 10, 13, 9, 30, tzinfo=timezone.utc)
    assert parse_published(expected) == expected
    assert parse_published(expected.replace(tzinfo=None)) == expected
    assert parse_published(expected.timestamp()) == expected
    assert parse_published(int(expected.timestamp() * 1000)) == expected
    assert parse_published(time.struct_time((2025, 10, 13, 9, 30, 0, 0, 286, 0))) == expected
    assert parse_published("2025-10-13T09:30:00Z") == expected
    assert parse_published("2025-10-13T11:30:00+02:00") == expected
    assert parse_published("Mon, 13 Oct 2025 09:30:00 GMT") == expected
    assert parse_published("Oct 13, 2025") == datetime(2025, 10, 13, tzinfo=timezone.utc)
    assert parse_published("3 hours ago", reference=expected) == expected - timedelta(hours=3)


def test_parse_published_gives_up_quietly():
    assert parse_published(None) is None
    assert parse_published("") is None
    assert parse_published("last Tuesday-ish") is None
    assert parse_published(True) is None
    assert parse_published(-5) is None
    assert parse_published("3 hours ago") is None


def test_text_cleanup():
    assert clean_text("<b>Amgen</b> &amp; Samsung&nbsp;Bioepis\n settle") == "Amgen & Samsung Bioepis settle"
    assert strip_publisher_suffix("FDA approves Wezlana - Reuters", "Reuters") == "FDA approves Wezlana"
    assert strip_publisher_suffix("Amgen - Samsung deal", "Reuters") == "Amgen - Samsung deal"
    assert title_signature("FDA Approves: Wezlana!") == "fda approves wezlana"
    assert title_from_url("https://example.com/news/amgen-wins_approval.html") == "amgen wins approval"
    text = "word " * 50
    cut = truncate_words(text.strip(), 30)
    assert len(cut) <= 30 and cut.endswith("…") and not cut.startswith(" ")


# ════════════════════════════════════════════════════════════════════
# Normalizer
# ════════════════════════════════════════════════════════════════════

def test_normalizer_builds_candidate_with_provenance(now, record):
    normalizer = Normalizer(ROWS, TARGETS, window(now))
    raw = record(
        "<em>Sandoz</em> and Amgen settle interchangeability dispute - FiercePharma",
        "https://www.fiercepharma.com/pharma/sandoz-amgen?utm_medium=email#top",
        source_name="FiercePharma",
        summary="<p>The companies agreed to a 2026 entry date.</p>",
    )

    c = normalizer.normalize(raw, keyword_query(0, 1))

    assert c.title == "Sandoz and Amgen settle interchangeability dispute"
    assert c.canonical_url == "https://fiercepharma.com/pharma/sandoz-amgen"
    assert c.source == "FiercePharma"
    assert c.summary == "The companies agreed to a 2026 entry date."
    assert c.keyword_matches == {"biosimilar", "interchangeability"}
    assert c.company_matches == {"Sandoz", "Amgen"}
    # the two rows disagree, so categories are left to the deduplicator
    assert c.sop_category is None
    assert [r[0] for r in c.category_rows] == [0, 1]
    assert len(c.id) == 16


def test_normalizer_drops_unusable_records(now, record):
    normalizer = Normalizer(ROWS, TARGETS, window(now))
    query = keyword_query(0)

    assert normalizer.normalize(record("", ""), query) is None
    assert normalizer.normalize(record("old", "https://a.example.com/x", days_ago=30), query) is None
    assert normalizer.normalize(record("no date", "https://a.example.com/y", published_at="garbage"), query) is None
    assert normalizer.drops == {"no_title": 1, "out_of_window": 1, "undated": 1}


def test_normalizer_falls_back_for_missing_fields(now, record):
    normalizer = Normalizer(ROWS, TARGETS, window(now))

    c = normalizer.normalize(record("", "https://www.biospace.com/article/celltrion-launch/"), keyword_query(0))
    assert c.title == "celltrion launch"
    assert c.source == "biospace.com"

    no_url = normalizer.normalize(record("Wire story", "not a url", fetcher="web"), keyword_query(0))
    assert no_url.url == "" and no_url.canonical_url == ""
    assert no_url.source == "web"


def test_normalizer_keeps_untitled_records_with_a_url(now, record):
    normalizer = Normalizer(ROWS, TARGETS, window(now))

    c = normalizer.normalize(record("", "https://blog.example.com/?p=123"), keyword_query(0))
    assert c is not None
    assert c.title == "blog.example.com"
    assert c.url == "https://blog.example.com/?p=123"

    home = normalizer.normalize(record("", "https://www.sandoz.com/"), keyword_query(0))
    assert home.title == "sandoz.com"
    assert "no_title" not in normalizer.drops


def test_normalize_all_keeps_outcome_order(now, record):
    normalizer = Normalizer(ROWS, TARGETS, window(now))
    q = keyword_query(0)
    outcomes = [
        FetchOutcome(fetcher="a", query=q, records=[record("one", "https://x.example.com/1")]),
        FetchOutcome(fetcher="b", query=q, error="boom"),
        FetchOutcome(fetcher="c", query=q, records=[record("two", "https://x.example.com/2")]),
    ]
    assert [c.title for c in normalizer.normalize_all(outcomes)] == ["one", "two"]


# ════════════════════════════════════════════════════════════════════
# Deduplicator
# ════════════════════════════════════════════════════════════════════

def _candidates(now, record, raws_and_queries):
    normalizer = Normalizer(ROWS, TARGETS, window(now))
    return [normalizer.normalize(raw, q) for raw, q in raws_and_queries]


def test_exact_duplicate_url_unions_keyword_matches(now, record):
    url = "https://www.centerforbiosimilars.com/view/story"
    cands = _candidates(now, record, [
        (record("Story", url), keyword_query(0)),
        (record("Story", url + "?utm_source=x", summary="Longer summary text here"), keyword_query(1)),
    ])

    merged = NewsDeduplicator().deduplicate(cands)

    assert len(merged) == 1
    assert merged[0].keyword_matches == {"biosimilar", "interchangeability"}
    assert merged[0].summary == "Longer summary text here"
    # first non-null in row order
    assert merged[0].sop_category == "Market"
    assert merged[0].business_category == "Commercial"


def test_dedup_is_idempotent(now, record):
    cands = _candidates(now, record, [
        (record("Story A", "https://a.example.com/1"), keyword_query(0)),
        (record("Story A", "https://a.example.com/1"), keyword_query(1)),
        (record("Story B", "https://b.example.com/2"), keyword_query(0)),
    ])
    dedup = NewsDeduplicator()
    once = dedup.deduplicate(cands)
    twice = dedup.deduplicate(once)
    assert once == twice
    assert len(once) == 2


def test_same_title_same_day_folds_unless_disabled(now, record):
    def cands():
        return _candidates(now, record, [
            (record("Biocon launches bevacizumab in Europe", "https://one.example.com/a", days_ago=1), keyword_query(0)),
            (record("Biocon Launches Bevacizumab in Europe!", "https://two.example.com/b", days_ago=1), keyword_query(1)),
        ])

    assert len(NewsDeduplicator(fold_titles=True).deduplicate(cands())) == 1
    assert len(NewsDeduplicator(fold_titles=False).deduplicate(cands())) == 2


def test_merge_keeps_earliest_real_date(now, record):
    url = "https://a.example.com/story"
    cands = _candidates(now, record, [
        (record("Story", url, days_ago=1), keyword_query(0)),
        (record("Story", url, days_ago=3), keyword_query(1)),
        (record("Story", url, published_at=None, time_filtered=True, fetched_at=now - timedelta(days=6)),
         keyword_query(0)),
    ])
    merged = NewsDeduplicator().deduplicate(cands)
    assert merged[0].published_at == now - timedelta(days=3)
    assert merged[0].date_inferred is False


def test_merge_is_independent_of_input_order(now, record):
    cands = _candidates(now, record, [
        (record("Story", "https://a.example.com/s", source_name="Wire A"), keyword_query(1)),
        (record("Story", "https://a.example.com/s", source_name="Wire B"), keyword_query(0)),
    ])
    dedup = NewsDeduplicator()
    assert dedup.deduplicate(cands) == dedup.deduplicate(list(reversed(cands)))
    assert dedup.deduplicate(cands)[0].source == "Wire B"


# ════════════════════════════════════════════════════════════════════
# Scorer
# ════════════════════════════════════════════════════════════════════

def _candidate(now, **overrides):
    fields = dict(
        id="abc", title="Story", source="src", url="https://unknown-site.example/x",
        canonical_url="https://unknown-site.example/x", published_at=now, summary="",
        fetcher="web", order=(0,),
    )
    fields.update(overrides)
    return NewsCandidate(**fields)


def test_source_tier_drives_authenticity(now):
    scorer = NewsScorer(watched_domains=["amgen.com"])
    fda = scorer.authentic_score(_candidate(now, url="https://www.fda.gov/news-events/x"))
    own = scorer.authentic_score(_candidate(now, url="https://investors.amgen.com/news/x"))
    press = scorer.authentic_score(_candidate(now, url="https://www.fiercepharma.com/x"))
    unknown = scorer.authentic_score(_candidate(now))
    spam = scorer.authentic_score(_candidate(now, url="https://best-coupon-deals.example/x"))
    assert fda > own > press > unknown > spam


def test_clickbait_and_inferred_dates_lower_authenticity(now):
    scorer = NewsScorer()
    plain = scorer.authentic_score(_candidate(now))
    assert scorer.authentic_score(_candidate(now, title="You won't believe this shocking biosimilar")) < plain
    assert scorer.authentic_score(_candidate(now, date_inferred=True)) < plain


def test_materiality_and_companies_raise_impact(now):
    scorer = NewsScorer()
    dull = scorer.market_impact_score(_candidate(now, title="Conference agenda published"))
    material = scorer.market_impact_score(_candidate(now, title="FDA approval for interchangeable biosimilar"))
    with_company = scorer.market_impact_score(_candidate(
        now, title="FDA approval for interchangeable biosimilar", company_matches={"Amgen", "Sandoz"},
    ))
    weighted = scorer.market_impact_score(_candidate(
        now, title="FDA approval for interchangeable biosimilar", business_categories={"Regulatory"},
    ))
    assert dull < material < with_company
    assert weighted >= material


def test_scores_stay_in_bounds_for_odd_input(now):
    scorer = NewsScorer(watched_domains=["", "amgen.com"])
    loud = " ".join(["approval launch patent litigation acquisition recall earnings"] * 20)
    extremes = [
        _candidate(now, url="", canonical_url="", title="", summary=""),
        _candidate(now, url="https://www.fda.gov/x", title=loud, summary=loud * 3,
                   company_matches={f"c{i}" for i in range(50)}, keyword_matches={f"k{i}" for i in range(50)},
                   business_categories={"Regulatory", "Litigation"}),
        _candidate(now, url="http://casino-coupon.example/x", title="Top 10 shocking sponsored promo code deals",
                   date_inferred=True),
    ]
    for c in extremes:
        a, m = scorer.score(c)
        assert 0 <= a <= 100 and 0 <= m <= 100


def test_scoring_fault_falls_back_to_neutral(now):
    broken = _candidate(now, company_matches=None)
    assert NewsScorer().score(broken)[1] == 50


# ════════════════════════════════════════════════════════════════════
# Aggregator
# ════════════════════════════════════════════════════════════════════

def _item(id, published, impact):
    return ConsolidatedNewsItem(id=id, title=id, source="s", url="", published_at=published,
                                market_impact_score=impact)


def test_aggregate_orders_and_truncates(now):
    items = [
        _item("b", now, 40),
        _item("a", now, 40),
        _item("c", now, 90),
        _item("d", now - timedelta(hours=1), 100),
        _item("e", now + timedelta(hours=1), 0),
    ]
    assert [i.id for i in aggregate(items, 10)] == ["e", "c", "a", "b", "d"]
    assert [i.id for i in aggregate(items, 2)] == ["e", "c"]
    assert aggregate(items, 0) == []
    assert aggregate(items, -3) == []
