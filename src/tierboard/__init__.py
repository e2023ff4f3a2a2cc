"""Tierboard: rank images into persistent, drag-reorderable tiers."""
