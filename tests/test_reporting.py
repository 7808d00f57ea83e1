import pandas as pd

from record_linkage.core.reporting import BlockSizeReport, FeatureDebugReport


def test_block_size_histogram_and_csv(tmp_path) -> None:
    report = BlockSizeReport(max_blocks=3)
    report.on_blocks([("la", 2, 3), ("sm", 1, 1), ("pasadena", 3, 2), ("none", 0, 4)])

    histogram = report.histogram()
    path = tmp_path / "blocks.csv"
    report.write_csv(path)
    written = pd.read_csv(path)

    assert histogram.to_dict() == {1: 1, 6: 2}
    assert written["blocking_key"].tolist() == ["la", "pasadena", "sm"]
    assert written["pairs"].tolist() == [6, 6, 1]


def test_feature_debug_report_csv(tmp_path) -> None:
    report = FeatureDebugReport(max_examples=2)
    for number, score in ((1, 0.9), (2, 0.1), (3, 0.5)):
        report.on_feature_vector({"first_id": f"a{number}", "second_id": f"b{number}", "score": score})
    path = tmp_path / "features.csv"

    report.write_csv(path, columns=["first_id", "score"])
    written = pd.read_csv(path)

    assert list(written.columns) == ["first_id", "score"]
    assert written.to_dict("records") == [
        {"first_id": "a1", "score": 0.9},
        {"first_id": "a2", "score": 0.1},
    ]
