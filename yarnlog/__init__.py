"""yarnlog - knitting and crochet pattern and project tracker."""

__version__ = "0.1.0"
