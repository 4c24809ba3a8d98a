import json
from pathlib import Path

from fastapi.testclient import TestClient
import pandas as pd
import pytest

from headline_clf.data.artifacts import save_index_to_class
from headline_clf.data.load_headlines import load_headlines_csv, split_train_val
from headline_clf.eval_text import evaluate_csv
from headline_clf.exceptions import LabelNotFound
from headline_clf.predict_text import Predictor
from headline_clf.serve import create_app
from headline_clf.train import StopReason, build_arg_parser, run_training

TRAIN_ROWS = [
    ("Storm warning issued for the coast", "weather"),
    ("Heavy rain expected this weekend", "weather"),
    ("Local team wins the championship", "sport"),
    ("Striker scores twice in final", "sport"),
    ("Rain delays the cup final", "sport|weather"),
    ("Council approves new budget", ""),
]
TEST_ROWS = [
    ("Storm expected this weekend", "weather"),
    ("Team scores in final", "sport"),
]


def _write_csv(path: Path, rows) -> None:
    pd.DataFrame(rows, columns=["text", "labels"]).to_csv(path, index=False)


@pytest.fixture()
def artifact_dir(tmp_path: Path) -> Path:
    _write_csv(tmp_path / "train.csv", TRAIN_ROWS)
    _write_csv(tmp_path / "test.csv", TEST_ROWS)
    out = tmp_path / "artifacts"
    args = build_arg_parser().parse_args(
        [
            "--train_csv",
            str(tmp_path / "train.csv"),
            "--test_csv",
            str(tmp_path / "test.csv"),
            "--output_dir",
            str(out),
            "--n_epochs",
            "5",
            "--learning_rate",
            "0.05",
            "--max_seq_len",
            "8",
            "--device",
            "cpu",
        ]
    )
    result = run_training(args)
    assert result.stop_reason in {StopReason.MAX_EPOCHS_REACHED, StopReason.EARLY_STOPPED}
    return out


def test_load_headlines_csv_keeps_empty_labels(tmp_path: Path) -> None:
    _write_csv(tmp_path / "train.csv", TRAIN_ROWS)
    texts, labels = load_headlines_csv(tmp_path / "train.csv")
    assert len(texts) == len(TRAIN_ROWS)
    assert labels[-1] == ""
    assert labels[4] == "sport|weather"


def test_load_headlines_csv_missing_column(tmp_path: Path) -> None:
    pd.DataFrame({"headline": ["a"]}).to_csv(tmp_path / "bad.csv", index=False)
    with pytest.raises(ValueError):
        load_headlines_csv(tmp_path / "bad.csv")


def test_split_train_val_is_seeded() -> None:
    texts = [t for t, _ in TRAIN_ROWS]
    labels = [lab for _, lab in TRAIN_ROWS]
    a = split_train_val(texts, labels, val_fraction=0.34, seed=7)
    b = split_train_val(texts, labels, val_fraction=0.34, seed=7)
    assert a == b
    assert len(a[0]) + len(a[1]) == len(texts)


def test_training_writes_artifacts(artifact_dir: Path) -> None:
    for name in ["vocab.json", "index_to_class.json", "model.pt", "metrics.json", "epoch_history.jsonl"]:
        assert (artifact_dir / name).exists(), name
    mapping = json.loads((artifact_dir / "index_to_class.json").read_text(encoding="utf-8"))
    assert mapping == {"mapping": {"0": "weather", "1": "sport"}}
    metrics = json.loads((artifact_dir / "metrics.json").read_text(encoding="utf-8"))
    assert metrics["n_classes"] == 2
    assert 1 <= metrics["epochs_run"] <= 5


def test_training_rejects_unseen_held_out_class(tmp_path: Path) -> None:
    _write_csv(tmp_path / "train.csv", TRAIN_ROWS)
    _write_csv(tmp_path / "test.csv", [("Election results announced", "politics")])
    args = build_arg_parser().parse_args(
        [
            "--train_csv",
            str(tmp_path / "train.csv"),
            "--test_csv",
            str(tmp_path / "test.csv"),
            "--output_dir",
            str(tmp_path / "out"),
            "--n_epochs",
            "1",
        ]
    )
    with pytest.raises(LabelNotFound, match="politics"):
        run_training(args)
    assert not (tmp_path / "out" / "model.pt").exists()
    assert not (tmp_path / "out" / "index_to_class.json").exists()
    assert not (tmp_path / "out" / "vocab.json").exists()


def test_failed_rerun_keeps_previous_artifacts(artifact_dir: Path, tmp_path: Path) -> None:
    before = {name: (artifact_dir / name).read_bytes() for name in ["vocab.json", "index_to_class.json", "model.pt"]}
    _write_csv(tmp_path / "train2.csv", [("Election called early", "politics")] + TRAIN_ROWS)
    _write_csv(tmp_path / "test2.csv", [("Markets slide on rate fears", "finance")])
    args = build_arg_parser().parse_args(
        [
            "--train_csv",
            str(tmp_path / "train2.csv"),
            "--test_csv",
            str(tmp_path / "test2.csv"),
            "--output_dir",
            str(artifact_dir),
            "--n_epochs",
            "1",
        ]
    )
    with pytest.raises(LabelNotFound, match="finance"):
        run_training(args)

    for name, content in before.items():
        assert (artifact_dir / name).read_bytes() == content, name
    assert Predictor(artifact_dir).index_to_class == {0: "weather", 1: "sport"}


def test_predictor_rejects_class_count_mismatch(artifact_dir: Path) -> None:
    save_index_to_class({0: "politics", 1: "weather", 2: "sport"}, artifact_dir / "index_to_class.json")
    with pytest.raises(ValueError, match="classes"):
        Predictor(artifact_dir)


def test_predictor_scores_and_thresholds(artifact_dir: Path) -> None:
    predictor = Predictor(artifact_dir, threshold=0.0)
    probs = predictor.predict_proba(["Storm hits the final", "never seen words"])
    assert probs.shape == (2, 2)
    assert ((probs >= 0.0) & (probs <= 1.0)).all()

    preds = predictor.predict("Storm hits the final")
    assert [next(iter(p)) for p in preds] == ["weather", "sport"]

    strict = Predictor(artifact_dir, threshold=1.0)
    assert all(next(iter(p.values())) >= 1.0 for p in strict.predict("Storm hits the final"))


def test_evaluate_csv_reports_counts(artifact_dir: Path, tmp_path: Path) -> None:
    _write_csv(tmp_path / "eval.csv", TEST_ROWS)
    report = evaluate_csv(Predictor(artifact_dir), tmp_path / "eval.csv")
    assert report["n"] == 2.0
    assert 0.0 <= report["f1"] <= 1.0
    assert report["true_positives"] + report["false_negatives"] == 2.0


def test_http_routes(artifact_dir: Path) -> None:
    client = TestClient(create_app(Predictor(artifact_dir, threshold=0.0)))

    health = client.get("/hc")
    assert health.status_code == 200
    assert health.json() == {"status": "healthy"}

    resp = client.post("/predict", json={"text": "Rain delays the final"})
    assert resp.status_code == 200
    body = resp.json()
    assert [next(iter(p)) for p in body["predictions"]] == ["weather", "sport"]

    bad = client.post("/predict", json={})
    assert bad.status_code == 422


def test_predict_route_reports_errors(artifact_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    predictor = Predictor(artifact_dir)

    def broken_predict(text: str):
        raise ValueError("cannot score headline")

    monkeypatch.setattr(predictor, "predict", broken_predict)
    client = TestClient(create_app(predictor))

    resp = client.post("/predict", json={"text": "Storm hits the coast"})
    assert resp.status_code == 200
    assert resp.json() == {"error": "cannot score headline"}
