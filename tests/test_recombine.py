import logging

import numpy as np
from tensorboard.compat.proto import summary_pb2

from conftest import png_entry
from tbevents.dto import ComplexHistogram, ComplexScalar, ImageStack, Scalar
from tbevents.pipeline.recombine import ComplexPairPolicy, SummaryValueIterator

Value = summary_pb2.Summary.Value


def _summary(*entries):
    return summary_pb2.Summary(value=list(entries))


def _scalar(tag, v):
    return Value(tag=tag, simple_value=v)


def _histo(tag, total):
    return Value(tag=tag, histo=summary_pb2.HistogramProto(num=1, sum=total, bucket_limit=[1.0], bucket=[1]))


def test_complex_scalar_is_merged():
    values = list(SummaryValueIterator(_summary(_scalar("z/re", 1.0), _scalar("z/im", -2.0), _scalar("loss", 0.5))))
    assert values == [("z", ComplexScalar(complex(1.0, -2.0))), ("loss", Scalar(0.5))]


def test_smart_off_yields_parts_separately():
    summary = _summary(_scalar("z/re", 1.0), _scalar("z/im", -2.0))
    values = list(SummaryValueIterator(summary, smart=False))
    assert values == [("z/re", Scalar(1.0)), ("z/im", Scalar(-2.0))]


def test_incomplete_pair_is_not_merged():
    summary = _summary(_scalar("z/re", 1.0), _scalar("w/im", 2.0), _scalar("z/im", 3.0))
    tags = [tag for tag, _ in SummaryValueIterator(summary)]
    assert tags == ["z/re", "w/im", "z/im"]


def test_pair_of_different_kinds_is_not_merged():
    summary = _summary(_scalar("z/re", 1.0), _histo("z/im", 2.0))
    kinds = [value.kind for _, value in SummaryValueIterator(summary)]
    assert kinds == ["scalar", "histogram"]


def test_complex_histogram_is_merged():
    ((tag, value),) = list(SummaryValueIterator(_summary(_histo("h/re", 1.0), _histo("h/im", 2.0))))
    assert tag == "h"
    assert isinstance(value, ComplexHistogram)
    assert (value.real.sum, value.imag.sum) == (1.0, 2.0)


def test_image_slices_are_stacked():
    slices = [np.full((2, 2), i * 10, dtype=np.uint8) for i in range(3)]
    summary = _summary(*(png_entry(f"vol/{i}", s) for i, s in enumerate(slices)), _scalar("loss", 1.0))
    it = SummaryValueIterator(summary)
    tag, value = next(it)
    assert tag == "vol"
    assert isinstance(value, ImageStack)
    assert value.pixels.shape == (3, 2, 2)
    assert it.cursor == 3
    assert next(it) == ("loss", Scalar(1.0))


def test_image_slices_with_mismatched_size_stop_the_group():
    summary = _summary(
        png_entry("vol/0", np.zeros((2, 2), dtype=np.uint8)),
        png_entry("vol/1", np.zeros((2, 2), dtype=np.uint8)),
        png_entry("vol/2", np.zeros((3, 3), dtype=np.uint8)),
    )
    results = list(SummaryValueIterator(summary))
    assert [tag for tag, _ in results] == ["vol", "vol/2"]
    assert len(results[0][1]) == 2


def test_lone_first_slice_is_left_alone():
    ((tag, value),) = list(SummaryValueIterator(_summary(png_entry("img/0", np.zeros((1, 1), dtype=np.uint8)))))
    assert tag == "img/0"
    assert value.kind == "image"


def test_custom_policy_suffixes():
    policy = ComplexPairPolicy("scalar", real_suffix="_real", imag_suffix="_imag")
    summary = _summary(_scalar("x_real", 1.0), _scalar("x_imag", 1.0))
    assert list(SummaryValueIterator(summary, policies=[policy])) == [("x", ComplexScalar(1 + 1j))]


def test_no_policies_disables_merging():
    summary = _summary(_scalar("z/re", 1.0), _scalar("z/im", 2.0))
    assert len(list(SummaryValueIterator(summary, policies=()))) == 2


def test_undecodable_entry_is_skipped_with_warning(caplog):
    summary = _summary(_scalar("a", 1.0), Value(tag="old", obsolete_old_style_histogram=b"\x00"), _scalar("b", 2.0))
    with caplog.at_level(logging.WARNING, logger="tbevents"):
        values = list(SummaryValueIterator(summary))
    assert values == [("a", Scalar(1.0)), ("b", Scalar(2.0))]
    assert "old" in caplog.text
