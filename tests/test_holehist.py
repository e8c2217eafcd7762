import matplotlib

matplotlib.use("Agg")

from stats.holehist import NBINS, bin_holes, draw, hole_lengths


def test_hole_lengths_across_dumps():
    assert hole_lengths(["[0, 10] - [20, 2] - [30, 6]", "[0, 0]", "[3, 1]"]) == \
        [10, 2, 6, 1]


def test_bin_holes_by_powers_of_two():
    counts = bin_holes([1, 2, 3, 10, 6, 65535])
    assert len(counts) == NBINS
    assert list(counts[:4]) == [1, 2, 1, 1]
    assert counts[15] == 1
    assert counts.sum() == 6


def test_draw_to_file(tmp_path):
    out = tmp_path / "hist.png"
    draw(str(out), bin_holes([4, 4, 9]))
    assert out.stat().st_size > 0
