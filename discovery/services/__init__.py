"""Catalog gateway, TMDB endpoints and review submission services."""
