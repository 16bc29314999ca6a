"""
ALPaCA Integration Tests
Tests the full discover/morph/rewrite/pad pipeline on a small site,
the resource padding handler, and the fallbacks when morphing fails.
"""

import json
import os
import shutil
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from alpaca import (
    ConfigError,
    DeterministicConfig,
    MorphConfig,
    ProbabilisticConfig,
    ResourceKind,
    morph_page,
    morph_page_with_stats,
    morph_resource,
    morph_with_config,
    parse_target_size,
)
from alpaca.distribution import CustomDist, Distributions, Family, OneParamDist
from alpaca.document import parse_html
from alpaca.strategies import ProbabilisticStrategy

TEST_SITE_DIR = Path(__file__).parent / "test-site"

PAGE = b"""<!DOCTYPE html>
<html><head><title>Test page</title>
<link rel="stylesheet" href="style.css">
</head><body><p>Hello, morphing.</p>
<img src="/img/logo.png">
<img src="https://cdn.example.com/remote.png">
</body></html>
"""

STYLE = b"body { font-family: sans-serif; color: #333; }\n"
LOGO = os.urandom(300)


def setup():
    """Clean up test directories."""
    if TEST_SITE_DIR.exists():
        shutil.rmtree(TEST_SITE_DIR)


def make_site(root: Path = TEST_SITE_DIR) -> str:
    (root / "img").mkdir(parents=True, exist_ok=True)
    (root / "style.css").write_bytes(STYLE)
    (root / "img" / "logo.png").write_bytes(LOGO)
    return str(root)


def write_dist(name: str, text: str) -> str:
    path = TEST_SITE_DIR / "dists" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return str(path)


def references(content: bytes) -> dict:
    """Map each img/link reference (without query) to its full value."""
    document = parse_html(content.decode("utf-8"))
    refs = {}
    for element in document.select("img", "link"):
        value = element.get_attribute("src") or element.get_attribute("href")
        refs.setdefault(value.split("?", 1)[0], []).append(element)
    return refs


def deterministic_config() -> MorphConfig:
    return MorphConfig(
        deterministic=DeterministicConfig(obj_num=5, obj_size=1000, max_obj_size=5000)
    )


def test_deterministic_page():
    """Test deterministic morphing end to end."""
    print("Testing deterministic page...", end=" ")
    root = make_site()
    content, stats = morph_page_with_stats(
        PAGE, root, "/index.html", 0, deterministic_config(),
        rng=np.random.default_rng(0),
    )

    assert stats.real_objects == 2
    assert stats.synthetic_objects == 3
    assert stats.unpadded_objects == 0
    assert not stats.fell_back
    assert stats.html_padded
    assert len(content) % 1000 == 0
    assert stats.final_size == len(content)
    assert content.endswith(b"-->")

    refs = references(content)
    assert refs["style.css"][0].get_attribute("href") == "style.css?alpaca-padding=1000"
    assert refs["/img/logo.png"][0].get_attribute("src") == "/img/logo.png?alpaca-padding=1000"
    assert refs["https://cdn.example.com/remote.png"][0].get_attribute("src") == \
        "https://cdn.example.com/remote.png"

    fakes = refs["/__alpaca_fake_image.png"]
    assert len(fakes) == 3
    for fake in fakes:
        assert fake.get_attribute("style") == "visibility:hidden"
        size = parse_target_size(fake.get_attribute("src").split("?", 1)[1])
        assert size % 1000 == 0 and 1000 <= size <= 5000

    # the page had no icon, so a placeholder was added
    assert b'rel="shortcut icon"' in content
    print("PASS")


def test_resources_served_at_target_size():
    """Test the resource handler reproduces the sizes written into the page."""
    print("Testing resource round trip...", end=" ")
    root = make_site()
    content = morph_page(PAGE, root, "/index.html", 0, deterministic_config())
    refs = references(content)

    css_query = refs["style.css"][0].get_attribute("href").split("?", 1)[1]
    css_pad = morph_resource("text/css", css_query, len(STYLE))
    assert len(STYLE) + len(css_pad) == parse_target_size(css_query)
    assert css_pad.startswith(b"/*") and css_pad.endswith(b"*/")

    img_query = refs["/img/logo.png"][0].get_attribute("src").split("?", 1)[1]
    img_pad = morph_resource("image/png", img_query, len(LOGO))
    assert len(LOGO) + len(img_pad) == parse_target_size(img_query)

    fake_query = refs["/__alpaca_fake_image.png"][0].get_attribute("src").split("?", 1)[1]
    assert len(morph_resource(ResourceKind.PADDING, fake_query, 0)) == parse_target_size(fake_query)
    print("PASS")


def test_morph_resource_without_target():
    """Test missing, zero or too-small targets produce no padding."""
    print("Testing morph_resource no-ops...", end=" ")
    assert morph_resource("image/png", "", 100) == b""
    assert morph_resource("image/png", "v=3", 100) == b""
    assert morph_resource("image/png", "alpaca-padding=0", 100) == b""
    assert morph_resource("image/png", "alpaca-padding=100", 100) == b""
    assert morph_resource("image/png", "alpaca-padding=50", 100) == b""
    assert morph_resource("image/png", "alpaca-padding=abc", 100) == b""
    assert len(morph_resource("image/png", "v=3&alpaca-padding=150&x=1", 100)) == 50
    assert len(morph_resource("text/css; charset=utf-8", "alpaca-padding=150", 100)) == 50
    print("PASS")


def test_morph_resource_non_ascii_digits():
    """Test Unicode digits in the query are treated as a malformed size."""
    print("Testing non-ASCII target sizes...", end=" ")
    for query in ["alpaca-padding=²", "alpaca-padding=١٢", "alpaca-padding=１２"]:
        assert parse_target_size(query) == 0
        assert morph_resource("image/png", query, 1) == b""
    print("PASS")


def test_probabilistic_page():
    """Test probabilistic morphing with empirical distributions."""
    print("Testing probabilistic page...", end=" ")
    root = make_site()
    config = MorphConfig(
        probabilistic=True,
        distributions=ProbabilisticConfig(
            dist_html_size=write_dist("html.dist", "100000 1.0\n"),
            dist_obj_number=write_dist("count.dist", "5 1.0\n"),
            dist_obj_size=write_dist("size.dist", "2000 1.0\n"),
        ),
    )
    content, stats = morph_page_with_stats(PAGE, root, "/index.html", 0, config)

    assert len(content) == 100000
    assert stats.real_objects == 2
    assert stats.synthetic_objects == 3
    assert stats.unpadded_objects == 0

    refs = references(content)
    assert refs["style.css"][0].get_attribute("href") == "style.css?alpaca-padding=2000"
    assert refs["/img/logo.png"][0].get_attribute("src") == "/img/logo.png?alpaca-padding=2000"
    assert len(refs["/__alpaca_fake_image.png"]) == 3
    print("PASS")


def test_probabilistic_parametric_page():
    """Test probabilistic morphing with parametric distributions."""
    print("Testing parametric page...", end=" ")
    root = make_site()
    config = {
        "probabilistic": True,
        "dist_html_size": "Normal/50000,10",
        "dist_obj_number": "Poisson/8",
        "dist_obj_size": "Normal/5000,10",
    }
    content, stats = morph_page_with_stats(
        PAGE, root, "/index.html", 0, config, rng=np.random.default_rng(42),
    )
    assert not stats.fell_back
    assert stats.html_padded
    assert 49900 < len(content) < 50100
    assert stats.real_objects + stats.synthetic_objects >= 2
    print("PASS")


def test_bad_distribution_falls_back():
    """Test an unparsable distribution serves the page unmorphed."""
    print("Testing bad distribution fallback...", end=" ")
    root = make_site()
    config = MorphConfig(
        probabilistic=True,
        distributions=ProbabilisticConfig("Normal/1000,10", "Bogus/3", "Normal/1000,10"),
    )
    content, stats = morph_page_with_stats(PAGE, root, "/index.html", 0, config)
    assert stats.fell_back
    assert stats.real_objects == 2
    assert b"alpaca-padding" not in content
    assert not content.endswith(b"-->")
    assert b"Hello, morphing." in content
    print("PASS")


def test_out_of_range_parameters_fall_back():
    """Test parameters the generator cannot draw from serve the page unmorphed."""
    print("Testing out-of-range parameter fallback...", end=" ")
    root = make_site()
    config = MorphConfig(
        probabilistic=True,
        distributions=ProbabilisticConfig("Normal/1000,10", "Poisson/1e20", "Normal/1000,10"),
    )
    content, stats = morph_page_with_stats(PAGE, root, "/index.html", 0, config)
    assert stats.fell_back
    assert b"alpaca-padding" not in content
    assert b"Hello, morphing." in content
    print("PASS")


def test_html_generator_error_skips_page_padding():
    """Test a page-size distribution the generator rejects only skips page padding."""
    print("Testing page-size generator error...", end=" ")
    root = make_site()
    strategy = ProbabilisticStrategy(Distributions(
        html=OneParamDist(Family.POISSON, 1e20),
        obj_num=CustomDist((5,), (1.0,)),
        obj_size=CustomDist((2000,), (1.0,)),
    ))
    content, stats = morph_page_with_stats(PAGE, root, "/index.html", 0, strategy)
    assert not stats.fell_back
    assert not stats.html_padded
    assert b"alpaca-padding=2000" in content
    assert not content.endswith(b"-->")
    print("PASS")


def test_count_exhaustion_falls_back():
    """Test a count distribution that never covers the real objects falls back."""
    print("Testing count exhaustion fallback...", end=" ")
    root = make_site()
    config = MorphConfig(
        probabilistic=True,
        distributions=ProbabilisticConfig(
            dist_html_size=write_dist("html.dist", "100000 1.0\n"),
            dist_obj_number=write_dist("one.dist", "1 1.0\n"),
            dist_obj_size=write_dist("size.dist", "2000 1.0\n"),
        ),
    )
    content, stats = morph_page_with_stats(PAGE, root, "/index.html", 0, config)
    assert stats.fell_back
    assert b"alpaca-padding" not in content
    print("PASS")


def test_html_size_exhaustion_keeps_resource_morphing():
    """Test failing to size the page only skips the page padding."""
    print("Testing html size exhaustion...", end=" ")
    root = make_site()
    config = MorphConfig(
        probabilistic=True,
        distributions=ProbabilisticConfig(
            dist_html_size=write_dist("tiny.dist", "10 1.0\n"),
            dist_obj_number=write_dist("count.dist", "5 1.0\n"),
            dist_obj_size=write_dist("size.dist", "2000 1.0\n"),
        ),
    )
    content, stats = morph_page_with_stats(PAGE, root, "/index.html", 0, config)
    assert not stats.fell_back
    assert not stats.html_padded
    assert b"alpaca-padding=2000" in content
    assert not content.endswith(b"-->")
    print("PASS")


def test_invalid_deterministic_bounds_fall_back():
    """Test inconsistent deterministic bounds serve the page unmorphed."""
    print("Testing deterministic fallback...", end=" ")
    root = make_site()
    config = MorphConfig(deterministic=DeterministicConfig(obj_num=2, obj_size=300, max_obj_size=1000))
    content, stats = morph_page_with_stats(PAGE, root, "/index.html", 0, config)
    assert stats.fell_back
    assert b"alpaca-padding" not in content
    print("PASS")


def test_http_host_in_root():
    """Test $http_host in the root is replaced with the request host."""
    print("Testing $http_host root...", end=" ")
    make_site(TEST_SITE_DIR / "example.com")
    root = str(TEST_SITE_DIR) + "/$http_host"
    _, stats = morph_page_with_stats(
        PAGE, root, "/index.html", 0, deterministic_config(), http_host="example.com",
    )
    assert stats.real_objects == 2
    print("PASS")


def test_page_without_resources():
    """Test a page with nothing to discover still gets fake objects and padding."""
    print("Testing page without resources...", end=" ")
    page = b"<html><body><p>plain</p></body></html>"
    content, stats = morph_page_with_stats(page, "/nonexistent", "/index.html", 0, deterministic_config())
    assert stats.real_objects == 0
    assert stats.synthetic_objects == 5
    assert len(content) % 1000 == 0
    print("PASS")


def test_undecodable_page_returned_unchanged():
    """Test bytes that are not UTF-8 are served as they are."""
    print("Testing undecodable page...", end=" ")
    page = b"<html>\xff\xfe</html>"
    content, stats = morph_page_with_stats(page, "/srv", "/index.html", 0, deterministic_config())
    assert content == page
    assert stats.fell_back
    print("PASS")


def test_config_from_file():
    """Test JSON configuration drives morph_with_config."""
    print("Testing config file...", end=" ")
    root = make_site()
    config_file = TEST_SITE_DIR / "alpaca.json"
    config_file.write_text(json.dumps({
        "root": root,
        "alias": 0,
        "obj_num": 4,
        "obj_size": 500,
        "max_obj_size": 2000,
    }))
    config = MorphConfig.from_file(config_file)
    assert config.deterministic.obj_size == 500
    assert not config.probabilistic

    content = morph_with_config(config, PAGE, "/index.html")
    assert len(content) % 500 == 0
    assert len(references(content)["/__alpaca_fake_image.png"]) == 2
    print("PASS")


def test_config_rejects_unknown_keys():
    """Test unknown or malformed settings raise ConfigError."""
    print("Testing config validation...", end=" ")
    for data in [{"obj_sizes": 10}, {"obj_num": "many"}, {"alias": -1}]:
        try:
            MorphConfig.from_dict(data)
            raise AssertionError(f"{data} should have raised ConfigError")
        except ConfigError:
            pass
    print("PASS")


def test_config_rejects_wrong_types():
    """Test JSON strings or nulls are not coerced into flags or specs."""
    print("Testing config value types...", end=" ")
    bad = [
        {"probabilistic": "false"},
        {"probabilistic": 1},
        {"dist_obj_size": None},
        {"dist_html_size": 20000},
        {"root": None},
    ]
    for data in bad:
        try:
            MorphConfig.from_dict(data)
            raise AssertionError(f"{data} should have raised ConfigError")
        except ConfigError:
            pass

    config = MorphConfig.from_dict({"probabilistic": False, "root": "/srv", "dist_obj_size": "Poisson/3"})
    assert config.probabilistic is False
    assert config.root == "/srv"
    assert config.distributions.dist_obj_size == "Poisson/3"
    print("PASS")


def main():
    setup()
    print("=" * 50)
    print("  ALPaCA Integration Tests")
    print("=" * 50)
    print()

    tests = [
        test_deterministic_page,
        test_resources_served_at_target_size,
        test_morph_resource_without_target,
        test_morph_resource_non_ascii_digits,
        test_probabilistic_page,
        test_probabilistic_parametric_page,
        test_bad_distribution_falls_back,
        test_out_of_range_parameters_fall_back,
        test_html_generator_error_skips_page_padding,
        test_count_exhaustion_falls_back,
        test_html_size_exhaustion_keeps_resource_morphing,
        test_invalid_deterministic_bounds_fall_back,
        test_http_host_in_root,
        test_page_without_resources,
        test_undecodable_page_returned_unchanged,
        test_config_from_file,
        test_config_rejects_unknown_keys,
        test_config_rejects_wrong_types,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAIL: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print()
    print(f"Results: {passed} passed, {failed} failed")

    # Cleanup
    setup()

    return failed == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
