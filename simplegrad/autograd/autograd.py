
# Scalar Automatic Differentiation Library
# Reverse-mode differentiation over a graph of scalar operations, in the spirit of micrograd

from enum import Enum
from typing import Callable, Iterable

import numpy as np


class GraphStructureError(RuntimeError):
    '''A derived node reached the backward pass without a derivative rule'''


class Cell:
    '''
    A shared, mutable float.

    A node keeps its data and its gradient in two cells so that derivative rules can hold
    on to the very same storage the node uses, rather than to a copy taken at construction.
    '''

    __slots__ = ("value",)

    def __init__(self, value: float = 0.0):
        self.value = float(value)

    def get(self) -> float:
        return self.value

    def set(self, value: float) -> None:
        self.value = value

    def __repr__(self):
        return f"Cell({self.value})"


class Operation(Enum):
    '''Which primitive produced a node. Only used for display, never for dispatch'''
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    POWER = "**"
    RELU = "relu"
    NONE = ""


def _power(base: float, exponent: float) -> float:
    # IEEE semantics: 0 ** -1 is inf and (-8) ** 0.5 is nan, instead of raising or going complex
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        return float(np.power(np.float64(base), exponent))


class _Node:
    '''Graph node record. Children and rule are fixed once the node exists'''

    __slots__ = ("data", "grad", "op", "children", "backward", "label")

    def __init__(self, data: Cell, grad: Cell, op: Operation, children: list["Value"], backward: Callable[[], None] | None, label: str):
        self.data = data
        self.grad = grad
        self.op = op
        self.children = children
        self.backward = backward
        self.label = label


class Value:
    '''
    A handle to a scalar node in the computation graph.

    Several handles may point at the same node, so equality and hashing follow node identity:
    two leaves holding the same number are still two different graph positions.
    '''

    __slots__ = ("_node",)

    # keep numpy from broadcasting over us, so that np.float64(2.0) * v calls Value.__rmul__
    __array_ufunc__ = None

    def __init__(self, data: float | int, label: str = ""):
        if not isinstance(data, (int, float, np.integer, np.floating)):
            raise TypeError(f"Value data must be a real number, got {type(data).__name__}")
        self._node = _Node(Cell(float(data)), Cell(0.0), Operation.NONE, [], None, label)

    @classmethod
    def _from_operation(cls, data: Cell, grad: Cell, op: Operation, children: Iterable["Value"], backward: Callable[[], None] | None) -> "Value":
        '''Full constructor, reserved to the operation builders below'''
        out = cls.__new__(cls)
        out._node = _Node(data, grad, op, list(children), backward, "")
        return out

    def alias(self) -> "Value":
        '''Return another handle to the same node'''
        out = Value.__new__(Value)
        out._node = self._node
        return out

    @property
    def data(self) -> float:
        return self._node.data.get()

    @data.setter
    def data(self, value: float) -> None:
        self._node.data.set(float(value))

    @property
    def grad(self) -> float:
        return self._node.grad.get()

    @grad.setter
    def grad(self, value: float) -> None:
        self._node.grad.set(float(value))

    @property
    def op(self) -> Operation:
        return self._node.op

    @property
    def children(self) -> tuple["Value", ...]:
        return tuple(self._node.children)

    @property
    def is_leaf(self) -> bool:
        return not self._node.children

    @property
    def label(self) -> str:
        return self._node.label

    @label.setter
    def label(self, label: str) -> None:
        self._node.label = label

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self._node is other._node

    def __hash__(self) -> int:
        return hash(id(self._node))

    def __repr__(self):
        '''Pretty print the node'''
        label = f"{self.label}: " if self.label != "" else ""
        op = f", op={self.op.value}" if self.op is not Operation.NONE else ""
        return f"Value({label}data={self.data}, grad={self.grad}{op})"

    #############################################################
    ## Operation builders
    #############################################################

    # KEY IDEA: every derivative rule captures cells, not numbers. The rule runs long after the
    # forward pass, and it must see the grad accumulated on `out` by then, and the data of the
    # operands as they are at replay time.
    # KEY IDEA: rules use += so that a node consumed by several parents sums all contributions

    def __add__(self, other0: "Value | float | int") -> "Value":
        other = _as_value(other0)
        s_grad, oth_grad = self._node.grad, other._node.grad
        out_grad = Cell(0.0)

        # d(a + b)/da = d(a + b)/db = 1
        def backward():
            s_grad.set(s_grad.get() + out_grad.get())
            oth_grad.set(oth_grad.get() + out_grad.get())

        data = Cell(self.data + other.data)
        return Value._from_operation(data, out_grad, Operation.ADD, (self, other), backward)

    def __radd__(self, left: float | int) -> "Value":
        return _as_value(left) + self

    def __mul__(self, other0: "Value | float | int") -> "Value":
        other = _as_value(other0)
        s_grad, oth_grad = self._node.grad, other._node.grad
        s_data, oth_data = self._node.data, other._node.data
        out_grad = Cell(0.0)

        # chain rule for multiplication
        def backward():
            s_grad.set(s_grad.get() + oth_data.get() * out_grad.get())
            oth_grad.set(oth_grad.get() + s_data.get() * out_grad.get())

        data = Cell(self.data * other.data)
        return Value._from_operation(data, out_grad, Operation.MUL, (self, other), backward)

    def __rmul__(self, left: float | int) -> "Value":
        return _as_value(left) * self

    def __pow__(self, exponent: float | int) -> "Value":
        '''Raise to a constant power. The exponent is a plain number, not part of the graph'''
        if isinstance(exponent, Value) or not isinstance(exponent, (int, float, np.integer, np.floating)):
            raise TypeError(f"only int/float powers are supported, got {type(exponent).__name__}")
        k = float(exponent)
        s_grad, s_data = self._node.grad, self._node.data
        out_grad = Cell(0.0)

        def backward():
            s_grad.set(s_grad.get() + k * _power(s_data.get(), k - 1) * out_grad.get())

        data = Cell(_power(self.data, k))
        return Value._from_operation(data, out_grad, Operation.POWER, (self,), backward)

    def power(self, exponent: float | int) -> "Value":
        return self ** exponent

    def relu(self) -> "Value":
        ''' ReLU activation function '''
        s_grad, s_data = self._node.grad, self._node.data
        out_grad = Cell(0.0)

        # the gradient flows through unless the input is negative
        def backward():
            s_grad.set(s_grad.get() + (0.0 if s_data.get() < 0 else out_grad.get()))

        data = Cell(self.data if self.data >= 0 else 0.0)
        return Value._from_operation(data, out_grad, Operation.RELU, (self,), backward)

    # the remaining operations are compositions of the primitives above, and so are their rules

    def __neg__(self) -> "Value":
        return self * -1.0

    def __sub__(self, other: "Value | float | int") -> "Value":
        return self + (-_as_value(other))

    def __rsub__(self, left: float | int) -> "Value":
        return _as_value(left) + (-self)

    def __truediv__(self, other: "Value | float | int") -> "Value":
        return self * (_as_value(other) ** -1)

    def __rtruediv__(self, left: float | int) -> "Value":
        return _as_value(left) * (self ** -1)

    def add(self, other: "Value | float | int") -> "Value":
        return self + other

    def mul(self, other: "Value | float | int") -> "Value":
        return self * other

    def neg(self) -> "Value":
        return -self

    def sub(self, other: "Value | float | int") -> "Value":
        return self - other

    def div(self, other: "Value | float | int") -> "Value":
        return self / other

    #############################################################
    ## Backward pass
    #############################################################

    def topological_order(self) -> list["Value"]:
        '''
        Derived nodes reachable from this one, each listed after all of its children.

        Leaves are visited but left out, as they have no rule to run. The walk uses an explicit
        stack: a loss summed over many samples easily builds chains deeper than the recursion limit.
        '''
        order: list[Value] = []
        visited: set[Value] = set()
        stack: list[tuple[Value, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if node in visited:
                continue
            visited.add(node)
            if node.is_leaf:
                continue
            # KEY IDEA: the node is re-pushed below its children so that it is emitted after all of them
            stack.append((node, True))
            for child in reversed(node._node.children):
                if child not in visited:
                    stack.append((child, False))
        return order

    def backward(self) -> None:
        '''
        Add d(self)/d(node) into the grad of every node this one depends on.

        Grads are accumulated, so call zero_grad() on the parameters between passes.
        '''
        order = self.topological_order()

        # the derivative of the output node wrt itself is 1
        self._node.grad.set(1.0)

        # reverse: start from the output and flow down to the inputs, so a node's grad is
        # complete before its own rule passes it on
        for node in reversed(order):
            rule = node._node.backward
            if rule is None:
                raise GraphStructureError(f"{node!r} has children but no derivative rule")
            rule()


def _as_value(x: "Value | float | int") -> Value:
    return x if isinstance(x, Value) else Value(x)


#############################################################
## Introspection
#############################################################

def trace(root: Value) -> tuple[set[Value], set[tuple[Value, Value]]]:
    '''All nodes reachable from root, and the (child, parent) edges between them'''
    nodes: set[Value] = set()
    edges: set[tuple[Value, Value]] = set()
    stack = [root]
    while stack:
        v = stack.pop()
        if v in nodes:
            continue
        nodes.add(v)
        for child in v.children:
            edges.add((child, v))
            stack.append(child)
    return nodes, edges


def graph_dict(root: Value) -> dict:
    '''JSON friendly description of the graph under root, for plotting'''
    nodes, edges = trace(root)
    return {
        "nodes": [
            {"id": str(hash(n)), "label": n.label, "data": n.data, "grad": n.grad, "op": n.op.value}
            for n in nodes
        ],
        "edges": [{"source": str(hash(c)), "target": str(hash(p))} for c, p in edges],
    }


def zero_grad(values: Iterable[Value]) -> None:
    for v in values:
        v.grad = 0.0
