"""Similarity metrics and duplicate resolution"""
