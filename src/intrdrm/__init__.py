"""
Intrdrm generation core.

Intrdrm continuously pairs concepts from a curated pool, asks a language model
to describe a surprising connection between them, scores every connection with
two independent critic passes and watches the health of the resulting pool.

The public surface is re-exported from the sub-packages:

    from intrdrm.pipeline import GenerationPipeline
    from intrdrm.monitoring import HealthMonitor
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
