"""Routers package for Kisekka Online API endpoints"""
from . import activities, listings, notifications, posts, reports, responses, search, session, shops, uploads, users

__all__ = [
	"activities",
	"listings",
	"notifications",
	"posts",
	"reports",
	"responses",
	"search",
	"session",
	"shops",
	"uploads",
	"users",
]
