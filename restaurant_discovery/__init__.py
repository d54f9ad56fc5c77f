"""Restaurant discovery, deduplication and validation pipeline"""
