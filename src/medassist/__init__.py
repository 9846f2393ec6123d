"""medassist: provider orchestration and literature retrieval for a medical assistant."""

__version__ = "0.1.0"
