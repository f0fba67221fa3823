"""CLI package namespace.

Keep package import side-effect free so handler modules can be imported
independently (tests call them with argparse.Namespace objects).
"""

__all__ = []
