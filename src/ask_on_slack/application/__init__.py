"""Application layer: reply correlation, human capability and tool entry points."""
