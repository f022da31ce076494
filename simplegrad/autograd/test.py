# Tests for the scalar autograd engine
# Test by running: python -m simplegrad.autograd.test (or pytest)

import json
import math

import numpy as np
import pytest
import torch

from .autograd import Cell, GraphStructureError, Operation, Value, graph_dict, trace, zero_grad


def test_forward_values():
    ''' Forward results of the primitive operations '''
    for da, db in [(1.0, 2.0), (-3.5, 0.25), (0.0, -1.0), (7.0, 7.0)]:
        a, b = Value(da), Value(db)
        assert (a + b).data == da + db
        assert (a * b).data == da * db
        assert (a - b).data == da - db
        assert a.power(3).data == da ** 3
        assert (a ** 2).data == da ** 2
        assert a.relu().data == max(da, 0.0)
        assert (-a).data == -da


def test_add():
    a = Value(1.0)
    b = Value(2.0)
    c = a + b
    d = c + b

    assert c.data == 3.0
    assert d.data == 5.0

    # b reaches d through two paths, both contributions must be summed
    d.backward()
    assert b.grad == 2.0
    assert a.grad == 1.0


def test_sub():
    a = Value(1.0)
    b = Value(2.0)
    c = a - b
    d = c - b

    assert c.data == -1.0
    assert d.data == -3.0

    d.backward()
    assert b.grad == -2.0


def test_mul():
    a = Value(1.0)
    b = Value(2.0)
    c = a + b
    d = c * b

    assert d.data == 6.0

    d.backward()
    assert b.grad == 5.0


def test_mul_neg():
    a = Value(1.0)
    b = Value(2.0)
    c = a - b
    d = c * b

    assert d.data == -2.0

    d.backward()
    assert b.grad == -3.0


def test_power():
    a = Value(1.0)
    b = Value(2.0)
    c = a + b
    d = c.power(2)

    assert d.data == 9.0

    d.backward()
    assert b.grad == 6.0


def test_relu_active():
    a = Value(1.0)
    b = Value(2.0)
    c = a + (b * 2)
    d = c.relu()
    e = d * 2

    assert e.data == 10.0

    e.backward()
    assert b.grad == 4.0


def test_relu_inactive():
    a = Value(1.0)
    b = Value(2.0)
    c = a - (b * 2)
    d = c.relu()
    e = d * 2

    assert e.data == 0.0

    e.backward()
    assert b.grad == 0.0


def test_div():
    a = Value(1.0)
    b = Value(2.0)
    c = a + b
    d = c / b

    assert d.data == 1.5

    d.backward()
    assert b.grad == -0.25


def test_reflected_operators():
    x = Value(4.0)
    assert (2 + x).data == 6.0
    assert (2 - x).data == -2.0
    assert (2 * x).data == 8.0
    assert (2 / x).data == 0.5

    y = 2 / x
    y.backward()
    assert x.grad == -2 / 16


def test_numpy_scalars_on_the_left():
    ''' np.float64 must defer to Value instead of building an object array '''
    x = Value(3.0)
    y = np.float64(2.0) * x + np.float64(1.0)
    assert isinstance(y, Value)
    assert y.data == 7.0


def test_operation_tags():
    a, b = Value(1.0), Value(2.0)
    assert a.op is Operation.NONE
    assert (a + b).op is Operation.ADD
    assert (a * b).op is Operation.MUL
    assert (a ** 2).op is Operation.POWER
    assert a.relu().op is Operation.RELU
    # derived operations carry the tag of their last primitive
    assert (-a).op is Operation.MUL
    assert (a - b).op is Operation.ADD
    assert (a / b).op is Operation.MUL


def test_children_keep_operand_order():
    a, b = Value(1.0), Value(2.0)
    c = a * b
    assert c.children == (a, b)
    assert (b * a).children == (b, a)
    assert a.is_leaf and not c.is_leaf
    assert a.children == ()


def test_builders_do_not_mutate_operands():
    ''' Building a graph leaves operand data and grads alone, only backward() writes grads '''
    a = Value(2.0)
    b = Value(-3.0)
    a.grad = 0.5

    c = a * b / a - b
    d = (c ** 2).relu() + a.relu()

    assert (a.data, a.grad) == (2.0, 0.5)
    assert (b.data, b.grad) == (-3.0, 0.0)
    assert c.grad == 0.0

    d.backward()
    assert a.grad != 0.5


def test_double_backward_accumulates():
    ''' Without zeroing in between, a second pass adds the same gradients again '''
    a = Value(3.0)
    b = Value(-2.0)
    d = a * b

    d.backward()
    first = (a.grad, b.grad)
    d.backward()
    assert (a.grad, b.grad) == (2 * first[0], 2 * first[1])

    zero_grad([a, b])
    assert (a.grad, b.grad) == (0.0, 0.0)


def test_double_backward_reuses_intermediate_grads():
    ''' Intermediate nodes keep their grad too, so deeper graphs grow faster than 2x '''
    a = Value(3.0)
    b = Value(-2.0)
    d = a * b + a

    d.backward()
    assert (a.grad, b.grad) == (-1.0, 3.0)
    d.backward()
    assert (a.grad, b.grad) == (-4.0, 9.0)


def test_identity_not_value_equality():
    a = Value(1.0)
    b = Value(1.0)
    assert a.data == b.data
    assert a != b
    assert len({a, b}) == 2

    alias = a.alias()
    assert alias == a
    assert hash(alias) == hash(a)
    assert len({a, alias}) == 1

    # handles share the node, so writes through one are seen through the other
    alias.grad = 5.0
    assert a.grad == 5.0

    assert a != 1.0


def test_same_node_through_aliases_is_visited_once():
    a = Value(2.0)
    c = a * a.alias()
    c.backward()
    assert a.grad == 4.0
    assert len(c.topological_order()) == 1


def test_rules_read_data_at_replay_time():
    ''' Rules hold the data cell of their operands, not a snapshot of it '''
    a = Value(2.0)
    b = Value(3.0)
    c = a * b
    a.data = 10.0
    c.backward()
    assert c.data == 6.0
    assert b.grad == 10.0
    assert a.grad == 3.0


def test_leaf_backward():
    a = Value(5.0)
    a.backward()
    assert a.grad == 1.0


def test_missing_rule_is_fatal():
    a = Value(1.0)
    b = Value(2.0)
    broken = Value._from_operation(Cell(3.0), Cell(0.0), Operation.ADD, (a, b), None)
    out = broken * 2

    with pytest.raises(GraphStructureError):
        out.backward()


def test_domain_errors_surface_as_ieee_values():
    assert Value(0.0).power(-1).data == math.inf
    assert math.isnan(Value(-8.0).power(0.5).data)
    assert (Value(1.0) / Value(0.0)).data == math.inf

    b = Value(0.0)
    d = Value(1.0) / b
    d.backward()
    assert math.isinf(b.grad)


def test_type_errors():
    with pytest.raises(TypeError):
        Value("1.0")  # type: ignore
    with pytest.raises(TypeError):
        Value(2.0) ** Value(2.0)  # type: ignore


def test_deep_chain():
    ''' Summing thousands of terms builds a chain deeper than the recursion limit '''
    xs = [Value(float(i)) for i in range(5000)]
    total = sum(xs)
    assert isinstance(total, Value)
    total.backward()
    assert all(x.grad == 1.0 for x in xs)


def test_topological_order():
    a, b = Value(1.0), Value(2.0)
    c = a * b
    d = c + a
    e = d * c
    order = e.topological_order()

    # only derived nodes, each one after its children
    assert order == [c, d, e]
    position = {v: i for i, v in enumerate(order)}
    for v in order:
        for child in v.children:
            if not child.is_leaf:
                assert position[child] < position[v]


def test_trace_and_graph_dict():
    a, b = Value(1.0, label="a"), Value(2.0, label="b")
    c = a * b
    d = c + a
    nodes, edges = trace(d)
    assert nodes == {a, b, c, d}
    assert edges == {(a, c), (b, c), (c, d), (a, d)}

    g = graph_dict(d)
    assert len(g["nodes"]) == 4
    assert len(g["edges"]) == 4
    assert {n["label"] for n in g["nodes"]} == {"a", "b", ""}
    assert "op=+" in repr(d)

    # plain str, float and list values only
    decoded = json.loads(json.dumps(g))
    assert decoded == g


def test_arithmetic():
    ''' Test a simple arithmetic, compare with PyTorch '''

    def forward(x):
        z = 2 * x + 2 + x # use x twice
        q = z.relu() + z * x
        h = (z * z).relu()
        y = h + q + q * x
        w = y / (h + 1.0) + (z - 3) ** 2 - 1 / x
        w.backward()
        return x, w

    x0 = torch.tensor([-4.0], dtype=torch.float64, requires_grad=True)
    x0, y0 = forward(x0)

    x1 = Value(-4.0)
    x1, y1 = forward(x1)

    # forward pass went well
    assert math.isclose(y1.data, y0.data.item(), rel_tol=1e-12)
    # backward pass went well
    assert x0.grad is not None
    assert math.isclose(x1.grad, x0.grad.item(), rel_tol=1e-12)


def test_gradcheck():
    ''' Compare the backward pass with central finite differences '''

    def f(a, b, c):
        return ((a * b + c) ** 2 / (b * b + 1) - (a - c).relu() * 3 + a / c)

    point = np.array([0.7, -1.3, 2.1])
    eps = 1e-6

    inputs = [Value(v) for v in point]
    out = f(*inputs)
    out.backward()
    auto = np.array([v.grad for v in inputs])

    numeric = np.zeros_like(point)
    for i in range(len(point)):
        plus, minus = point.copy(), point.copy()
        plus[i] += eps
        minus[i] -= eps
        numeric[i] = (f(*[Value(v) for v in plus]).data - f(*[Value(v) for v in minus]).data) / (2 * eps)

    assert np.allclose(auto, numeric, rtol=1e-5, atol=1e-7)


def test_linear_regression():
    ''' Fit y = a * x + b by gradient descent '''

    x = np.linspace(-10, 10, 21)
    a0 = 3.0
    b0 = 1.0
    y = a0 * x + b0

    a = Value(1.0)
    b = Value(0.0)

    for _ in range(1000):
        y_est = [a * x_i + b for x_i in x]
        loss = [(ye - y_i) * (ye - y_i) for ye, y_i in zip(y_est, y)]
        avg_loss = sum(loss) / len(loss)
        zero_grad([a, b])
        avg_loss.backward()

        lr = 0.01
        a.data -= lr * a.grad
        b.data -= lr * b.grad

    assert abs(a.data - a0) < 1e-5
    assert abs(b.data - b0) < 1e-5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
