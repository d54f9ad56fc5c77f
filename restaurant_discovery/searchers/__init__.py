"""Source adapters and the query coalescer"""
