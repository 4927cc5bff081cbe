import numpy as np
import pytest

from backpropnets.core.activations import get_activation
from backpropnets.core.losses import REGISTRY as ERROR_REGISTRY
from backpropnets.core.network import LOGISTIC, TANH, FeedForwardNetwork
from backpropnets.core.types import WeightDelta


def _numeric_gradient(network, x, y, layer, i, j, eps=1e-6):
    original = network.weights[layer][i, j]
    network.weights[layer][i, j] = original + eps
    plus = network.error(x, y)
    network.weights[layer][i, j] = original - eps
    minus = network.error(x, y)
    network.weights[layer][i, j] = original
    return (plus - minus) / (2 * eps)


@pytest.mark.parametrize("activation", ["logistic", "tanh"])
@pytest.mark.parametrize("loss", ["mse", "ce"])
def test_backprop_matches_finite_differences(activation, loss):
    network = FeedForwardNetwork(
        layer_dims=[3, 4, 2],
        activation=activation,
        output_activation="logistic",
        bias_init="random",
        loss=loss,
        seed=5,
    )
    x = np.array([0.3, -0.7, 0.5])
    y = np.array([1.0, 0.0])
    delta, error = network.backprop(x, y)

    assert error == pytest.approx(network.error(x, y))
    for layer, (rows, cols) in enumerate(network.layer_shapes()):
        for i in range(rows):
            for j in range(cols):
                expected = -_numeric_gradient(network, x, y, layer, i, j)
                assert delta.weights[layer][i, j] == pytest.approx(expected, rel=1e-4, abs=1e-7)


def test_backprop_does_not_touch_weights():
    network = FeedForwardNetwork(layer_dims=[2, 3, 1], seed=0)
    before = network.state_dict()
    network.backprop(np.array([1.0, 0.0]), np.array([1.0]))
    after = network.state_dict()
    assert all(np.array_equal(before[k], after[k]) for k in before)


def test_backprop_rejects_wrong_dimensions():
    network = FeedForwardNetwork(layer_dims=[2, 3, 1])
    with pytest.raises(ValueError, match="inputs"):
        network.backprop(np.zeros(3), np.zeros(1))
    with pytest.raises(ValueError, match="expected outputs"):
        network.backprop(np.zeros(2), np.zeros(2))


def test_apply_delta_adds_and_keeps_shapes():
    network = FeedForwardNetwork(layer_dims=[2, 3, 1], seed=0)
    shapes = network.layer_shapes()
    before = network.state_dict()
    delta = WeightDelta.zeros(shapes)
    delta.weights[0][:] = 0.5
    delta.biases[1][:] = -1.0
    network.apply_delta(delta)

    assert network.layer_shapes() == shapes
    assert np.allclose(network.weights[0], before["W0"] + 0.5)
    assert np.allclose(network.biases[1], before["b1"] - 1.0)

    with pytest.raises(ValueError, match="do not match"):
        network.apply_delta(WeightDelta.zeros([(2, 2), (2, 1)]))


def test_parameter_presets_set_bias_and_activation():
    logistic = FeedForwardNetwork.with_parameters([2, 3, 1], LOGISTIC)
    tanh = FeedForwardNetwork.with_parameters([2, 3, 1], TANH)
    assert all(np.all(b == -1.0) for b in logistic.biases)
    assert all(np.all(b == 1.0) for b in tanh.biases)
    assert (logistic.activation, tanh.activation) == ("logistic", "tanh")
    assert np.all(np.abs(tanh.forward(np.array([[5.0, 5.0]]))) < 1.0)


def test_weight_init_is_bounded_by_fan_in():
    network = FeedForwardNetwork(layer_dims=[16, 8, 1], seed=3)
    assert np.all(np.abs(network.weights[0]) <= 1.0 / np.sqrt(16))
    assert np.all(np.abs(network.weights[1]) <= 1.0 / np.sqrt(8))


def test_forward_accepts_batches():
    network = FeedForwardNetwork(layer_dims=[2, 4, 3], seed=0)
    single = network.forward(np.array([0.5, -0.5]))
    batch = network.forward(np.array([[0.5, -0.5], [0.1, 0.2]]))
    assert single.shape == (3,)
    assert batch.shape == (2, 3)
    assert np.allclose(batch[0], single)


def test_save_and_load_roundtrip(tmp_path):
    network = FeedForwardNetwork(layer_dims=[2, 3, 1], seed=0)
    path = network.save(tmp_path / "ckpt" / "weights.npz")
    other = FeedForwardNetwork(layer_dims=[2, 3, 1], seed=99)
    other.load(path)
    x = np.array([0.2, 0.9])
    assert np.allclose(other.forward(x), network.forward(x))


def test_load_state_dict_rejects_other_shapes():
    network = FeedForwardNetwork(layer_dims=[2, 3, 1])
    state = FeedForwardNetwork(layer_dims=[2, 4, 1]).state_dict()
    with pytest.raises(ValueError, match="shape"):
        network.load_state_dict(state)


def test_invalid_construction():
    with pytest.raises(ValueError):
        FeedForwardNetwork(layer_dims=[3])
    with pytest.raises(ValueError):
        FeedForwardNetwork(layer_dims=[2, 0, 1])
    with pytest.raises(ValueError):
        FeedForwardNetwork(layer_dims=[2, 1], bias_init="ones")
    with pytest.raises(KeyError):
        FeedForwardNetwork(layer_dims=[2, 1], activation="softsign")
    with pytest.raises(KeyError):
        FeedForwardNetwork(layer_dims=[2, 1], loss="hinge")


def test_error_functions():
    mse = ERROR_REGISTRY.resolve("mse")
    value, grad = mse(np.array([1.0, 0.0]), np.array([0.0, 0.0]))
    assert value == pytest.approx(0.5)
    assert np.allclose(grad, [1.0, 0.0])

    ce = ERROR_REGISTRY.resolve("ce")
    value, _ = ce(np.array([0.5, 0.5]), np.array([1.0, 0.0]))
    assert value == pytest.approx(-np.log(0.5) / 2)
    assert list(ERROR_REGISTRY.names()) == ["ce", "mae", "mse"]


def test_activation_derivatives_use_outputs():
    logistic = get_activation("logistic")
    y = logistic(np.array([0.0]))
    assert y[0] == pytest.approx(0.5)
    assert logistic.derivative(y)[0] == pytest.approx(0.25)
    tanh = get_activation("tanh")
    assert tanh.derivative(tanh(np.array([0.0])))[0] == pytest.approx(1.0)
    assert get_activation("sigmoid") is logistic
