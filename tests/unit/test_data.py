import numpy as np
import pytest

from backpropnets.core.types import Example
from backpropnets.data import TrainingSet, available_datasets, get_dataset, register_dataset
from backpropnets.data.registry import DatasetSpec


def test_training_set_keeps_order_without_shuffle():
    ts = TrainingSet(np.arange(6).reshape(3, 2), np.arange(3))
    assert len(ts) == 3
    assert (ts.input_dim, ts.output_dim) == (2, 1)
    assert list(ts.order(0)) == list(ts.order(5)) == [0, 1, 2]
    first = [ex.inputs.tolist() for ex in ts.iter_epoch(0)]
    assert first == [[0.0, 1.0], [2.0, 3.0], [4.0, 5.0]]


def test_shuffled_order_is_seeded_per_epoch():
    a = TrainingSet(np.arange(20).reshape(10, 2), np.zeros(10), shuffle=True, seed=3)
    b = TrainingSet(np.arange(20).reshape(10, 2), np.zeros(10), shuffle=True, seed=3)
    assert a.order(0) == b.order(0)
    assert a.order(1) == b.order(1)
    assert sorted(a.order(2)) == list(range(10))
    assert any(a.order(e) != a.order(e + 1) for e in range(5))


def test_examples_are_read_only():
    example = Example([1.0, 2.0], [0.0])
    with pytest.raises(ValueError):
        example.inputs[0] = 5.0


def test_mismatched_lengths_are_rejected():
    with pytest.raises(ValueError, match="disagree"):
        TrainingSet(np.zeros((3, 2)), np.zeros((2, 1)))


def test_split_is_deterministic_and_disjoint():
    ts = TrainingSet(np.arange(40).reshape(20, 2), np.arange(20))
    train, held = ts.split(0.25, seed=1)
    again, _ = ts.split(0.25, seed=1)
    assert (len(train), len(held)) == (15, 5)
    assert np.array_equal(train.inputs(), again.inputs())
    seen = {tuple(row) for row in train.inputs()} | {tuple(row) for row in held.inputs()}
    assert len(seen) == 20
    with pytest.raises(ValueError):
        ts.split(1.0)


def test_builtin_datasets_are_registered():
    assert {"xor", "sine", "blobs", "csv"} <= set(available_datasets())

    xor = get_dataset("xor", repeat=2)
    assert (xor.d_in, xor.d_out, len(xor.training_set)) == (2, 1, 8)
    assert xor.task_type == "binary"

    sine = get_dataset("sine", n_points=32, seed=1)
    targets = sine.training_set.expected()
    assert targets.shape == (32, 1)
    assert targets.min() >= 0.0 and targets.max() <= 1.0

    blobs = get_dataset("blobs", n_classes=4, per_class=5, dim=3)
    assert (blobs.d_in, blobs.d_out, len(blobs.training_set)) == (3, 4, 20)
    assert np.allclose(blobs.training_set.expected().sum(axis=1), 1.0)


def test_unknown_dataset():
    with pytest.raises(KeyError, match="Unknown dataset"):
        get_dataset("mnist")


def test_register_dataset_directly():
    def make_pair():
        return DatasetSpec(
            name="pair",
            training_set=TrainingSet(np.ones((2, 1)), np.zeros((2, 1))),
            task_type="regression",
        )

    register_dataset("unit-pair", make_pair)
    assert len(get_dataset("unit-pair").training_set) == 2


def test_registry_validates_task_type():
    @register_dataset("unit-bad-task")
    def make_bad():
        return DatasetSpec(
            name="bad", training_set=TrainingSet(np.ones((1, 1)), np.ones((1, 1))), task_type="rank"
        )

    with pytest.raises(ValueError, match="task type"):
        get_dataset("unit-bad-task")


def test_csv_loader_multiclass(tmp_path):
    path = tmp_path / "letters.csv"
    path.write_text("A,1,2\nB,3,4\nA,5,6\nC,7,8\n")
    spec = get_dataset(
        "csv", csv_path=path, target_col=0, task_type="multiclass", header=False
    )
    assert (spec.d_in, spec.d_out) == (2, 3)
    assert spec.provenance["classes"] == ["A", "B", "C"]
    expected = spec.training_set.expected()
    assert expected[0].tolist() == [1.0, 0.0, 0.0]
    assert expected[3].tolist() == [0.0, 0.0, 1.0]
    assert np.allclose(spec.training_set.inputs().mean(axis=0), 0.0)


def test_csv_loader_binary_and_regression(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("x1,x2,target\n0.1,0.2,yes\n0.3,0.4,no\n")
    binary = get_dataset(
        "csv", csv_path=path, task_type="binary", positive_label="yes", standardize_inputs=False
    )
    assert binary.training_set.expected().ravel().tolist() == [1.0, 0.0]
    assert binary.training_set.inputs()[1].tolist() == [0.3, 0.4]

    with pytest.raises(ValueError, match="positive_label"):
        get_dataset("csv", csv_path=path, task_type="binary")
    with pytest.raises(KeyError, match="label"):
        get_dataset("csv", csv_path=path, target_col="label")

    numeric = tmp_path / "numeric.csv"
    numeric.write_text("x,target\n1,0.5\n2,0.25\n")
    regression = get_dataset("csv", csv_path=numeric)
    assert regression.training_set.expected().ravel().tolist() == [0.5, 0.25]
