from core.share import (
    SHARE_CODE_ALPHABET,
    extract_share_code,
    generate_code,
    is_share_url,
    is_well_formed_code,
    normalize_code,
    qr_png,
    share_url,
)
from core.social_preview import open_graph_tags, poll_preview, twitter_card_tags


def test_generated_codes_use_the_share_alphabet():
    code = generate_code()
    assert len(code) == 8
    assert all(ch in SHARE_CODE_ALPHABET for ch in code)
    assert is_well_formed_code(code)
    assert len(generate_code(12)) == 12


def test_normalize_code():
    assert normalize_code("  ab12cd34 ") == "AB12CD34"
    assert not is_well_formed_code("ab12cd34")


def test_share_url_round_trip():
    url = share_url("ABCD1234", base_url="https://polls.example.com/")
    assert url == "https://polls.example.com/share/ABCD1234"
    assert extract_share_code(url) == "ABCD1234"
    assert is_share_url(url, base_url="https://polls.example.com")
    assert not is_share_url(url, base_url="https://elsewhere.example.com")
    assert not is_share_url("/share/ABCD1234", base_url="https://polls.example.com")
    assert extract_share_code("https://polls.example.com/polls/abc") is None


def test_qr_png_is_a_png_image():
    data = qr_png("https://polls.example.com/share/ABCD1234")
    assert data.startswith(b"\x89PNG\r\n\x1a\n")


def test_preview_falls_back_to_generated_description():
    preview = poll_preview("abc", "Lunch?", None, option_count=3, vote_count=5, base_url="https://x.test")

    assert preview["title"] == "Lunch? - Polling App"
    assert preview["description"] == 'Vote on "Lunch?" - 3 options available (5 votes so far)'
    assert preview["url"] == "https://x.test/polls/abc"
    assert preview["image_url"] == "https://x.test/api/og/poll/abc"

    og = open_graph_tags(preview)
    assert og["og:title"] == preview["title"]
    assert twitter_card_tags(preview)["twitter:card"] == "summary_large_image"


def test_preview_keeps_explicit_description():
    preview = poll_preview("abc", "Lunch?", "Where do we eat", option_count=2, vote_count=0)
    assert preview["description"] == "Where do we eat"
