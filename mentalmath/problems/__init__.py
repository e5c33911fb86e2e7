from .generator import ProblemGenerator, generate, generate_batch, inclusive_randint

__all__ = ["ProblemGenerator", "generate", "generate_batch", "inclusive_randint"]
