# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from typing import List, Optional

try:
    from sentence_transformers import SentenceTransformer
except ImportError:
    SentenceTransformer = None

class SentenceTransformerEmbedder:
    """
    Embedding provider backed by a local 'sentence_transformers' model.

    Installation:
        pip install sentence-transformers

    Usage:
        embedder = SentenceTransformerEmbedder("all-MiniLM-L6-v2")
        client = GraphClient(connection, schema, embed=embedder)
    """
    def __init__(self, model_name: str = "all-MiniLM-L6-v2", device: Optional[str] = None,
                 output_dim: Optional[int] = None, normalize: bool = True):
        if SentenceTransformer is None:
            raise ImportError("sentence-transformers is not installed. Run `pip install sentence-transformers`.")

        self.model = SentenceTransformer(model_name, device=device)
        self.model_name = model_name
        self.output_dim = output_dim
        self.normalize = normalize

    def __call__(self, texts: List[str]) -> List[List[float]]:
        """One vector per text, in input order."""
        if not texts:
            return []
        # Unit-length vectors keep the store's 1 - d^2/2 score equal to cosine similarity
        embeddings = self.model.encode(
            list(texts),
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
        )
        if self.output_dim:
            return embeddings[:, :self.output_dim].tolist()
        return embeddings.tolist()
