"""Transaction latency benchmarks for EVM JSON-RPC networks."""
from .helpers import Measurement, measure

__all__ = ["Measurement", "measure"]
