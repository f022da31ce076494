from .data import group, make_moons
from .losses import LOSSES, alpha, get_loss, l2, mse, svm_max_margin
from .nn import MLP, Layer, Module, Neuron, TrainConfig, accuracy, sgd_step, train
