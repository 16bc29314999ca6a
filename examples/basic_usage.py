"""
ALPaCA Basic Usage Example

Morphs a small page in both modes and then plays the server's part
for the resource requests the browser would make afterwards.
"""

import logging
import shutil
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from alpaca import (
    DeterministicConfig,
    MorphConfig,
    ProbabilisticConfig,
    morph_page_with_stats,
    morph_resource,
)

SITE = Path("./example-site")

PAGE = b"""<!DOCTYPE html>
<html><head><title>Hello</title>
<link rel="stylesheet" href="css/main.css">
</head><body>
<h1>Hello, world</h1>
<img src="img/photo.jpg">
</body></html>
"""


def make_site():
    (SITE / "css").mkdir(parents=True, exist_ok=True)
    (SITE / "img").mkdir(parents=True, exist_ok=True)
    (SITE / "css" / "main.css").write_bytes(b"h1 { color: navy; }\n" * 20)
    (SITE / "img" / "photo.jpg").write_bytes(b"\xff\xd8\xff" + b"\x00" * 4000)


def show(title, content, stats):
    print(f"\n{title}")
    print(f"  page: {stats.original_size} -> {stats.final_size} bytes")
    print(f"  real objects: {stats.real_objects}, "
          f"fake objects: {stats.synthetic_objects}, "
          f"unpadded: {stats.unpadded_objects}")
    for line in content.decode("utf-8").splitlines():
        if "alpaca-padding" in line:
            print(f"  {line.strip()[:100]}")


def main():
    logging.basicConfig(level=logging.INFO)
    make_site()

    print("=" * 50)
    print("  ALPaCA: Page Morphing")
    print("=" * 50)

    # Deterministic: everything becomes a multiple of obj_size
    config = MorphConfig(
        deterministic=DeterministicConfig(obj_num=4, obj_size=2000, max_obj_size=10000),
    )
    content, stats = morph_page_with_stats(PAGE, str(SITE), "/index.html", 0, config)
    show("Deterministic", content, stats)

    # Probabilistic: count and sizes are sampled
    config = MorphConfig(
        probabilistic=True,
        distributions=ProbabilisticConfig(
            dist_html_size="Normal/12000,1500",
            dist_obj_number="Poisson/6",
            dist_obj_size="LogNormal/8.5,0.8",
        ),
    )
    content, stats = morph_page_with_stats(PAGE, str(SITE), "/index.html", 0, config)
    show("Probabilistic", content, stats)

    # The browser now asks for css/main.css?alpaca-padding=N; the server
    # appends the padding returned by morph_resource.
    css = (SITE / "css" / "main.css").read_bytes()
    padding = morph_resource("text/css", "alpaca-padding=2000", len(css))
    print(f"\nServing css/main.css: {len(css)} + {len(padding)} = {len(css) + len(padding)} bytes")

    padding = morph_resource("image/png", "alpaca-padding=6000", 0)
    print(f"Serving a fake object: {len(padding)} bytes")

    shutil.rmtree(SITE)


if __name__ == "__main__":
    main()
