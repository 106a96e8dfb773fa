"""Registry metrics indexer: TVL, volume and pool refresh."""
