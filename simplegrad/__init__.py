# A scalar autograd engine and the small neural network toolkit built on top of it

from .autograd import Value, zero_grad
