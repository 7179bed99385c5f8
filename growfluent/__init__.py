"""
GrowFluent: spaced-repetition vocabulary trainer.

The scheduling core (memory model, session selection, result aggregation
and the session state machine) lives in ``growfluent.srs``; persistence in
``growfluent.storage``; the generative-AI boundary in ``growfluent.oracle``.
"""

__version__ = "1.0.0"
