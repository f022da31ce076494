from .xval import DEFAULT_LAMBDA, CrossValidation, FloatingRange
