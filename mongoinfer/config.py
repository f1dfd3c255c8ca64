"""Read configuration for sampling a MongoDB collection."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from pymongo.uri_parser import parse_uri

DEFAULT_SAMPLE_SIZE = 1000
DEFAULT_URI = 'mongodb://localhost:27017'


@dataclass
class ReadConfig:
    """Where to sample documents from and how to aggregate them.

    Attributes:
        uri: MongoDB connection string
        database: Database name
        collection: Collection name
        sample_size: Number of documents to sample
        query: Optional filter applied before sampling
        num_partitions: Number of partitions for the aggregation, CPU count if None
        depth: Depth of the aggregation tree
    """
    uri: str = DEFAULT_URI
    database: Optional[str] = None
    collection: Optional[str] = None
    sample_size: int = DEFAULT_SAMPLE_SIZE
    query: Dict[str, Any] = field(default_factory=dict)
    num_partitions: Optional[int] = None
    depth: int = 2

    @classmethod
    def from_uri(cls, uri: str, **overrides: Any) -> 'ReadConfig':
        """Creates a config from a ``mongodb://host/db.collection`` URI.

        Explicit ``database`` and ``collection`` overrides win over the
        values found in the URI; overrides that are None are ignored.
        """
        parsed = parse_uri(uri)
        config = cls(uri=uri, database=parsed.get('database'), collection=parsed.get('collection'))
        return replace(config, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def namespace(self) -> str:
        return f'{self.database}.{self.collection}'

    def validate(self) -> 'ReadConfig':
        """Checks the settings and returns the config for chaining."""
        if not self.database:
            raise ValueError("A database name is required, either in the URI or as an option")
        if not self.collection:
            raise ValueError("A collection name is required, either in the URI or as an option")
        if self.sample_size <= 0:
            raise ValueError(f"sample_size must be a positive integer but got {self.sample_size}")
        if self.num_partitions is not None and self.num_partitions <= 0:
            raise ValueError(f"num_partitions must be a positive integer but got {self.num_partitions}")
        if self.depth < 1:
            raise ValueError(f"depth must be greater than or equal to 1 but got {self.depth}")
        return self
