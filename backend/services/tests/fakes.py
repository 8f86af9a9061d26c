"""Routing provider doubles for tests."""

from common.utils.geo import calculate_distance
from services.exceptions import ProviderError
from services.routing.providers import RoutingProvider, RouteSegment


class StraightLineProvider(RoutingProvider):
	"""
	Routes along the straight line between the two points, as one segment.

	Distance is the haversine distance in km, travel time assumes 60 km/h.
	Points listed in `failing` (as (lat, lon)) make any route touching them fail.
	"""

	name = "straight-line"

	def __init__(self, failing=()):
		self.failing = {(round(lat, 6), round(lon, 6)) for lat, lon in failing}
		self.calls = []

	def route(self, start_lon, start_lat, end_lon, end_lat):
		self.calls.append((start_lat, start_lon, end_lat, end_lon))
		for point in ((start_lat, start_lon), (end_lat, end_lon)):
			if (round(point[0], 6), round(point[1], 6)) in self.failing:
				raise ProviderError("no path")

		km = calculate_distance(start_lat, start_lon, end_lat, end_lon) / 1000.0
		seconds = km * 60.0
		return [RouteSegment(
			geometry=[[start_lon, start_lat], [end_lon, end_lat]],
			cost=km,
			time_cost=seconds,
			agg_cost=km,
			agg_time_cost=seconds,
		)]


class ScriptedProvider(RoutingProvider):
	"""Returns the given segment list for every call."""

	name = "scripted"

	def __init__(self, segments):
		self.segments = segments
		self.calls = 0

	def route(self, start_lon, start_lat, end_lon, end_lat):
		self.calls += 1
		return list(self.segments)
