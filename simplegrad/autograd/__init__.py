from .autograd import Cell, GraphStructureError, Operation, Value, graph_dict, trace, zero_grad
