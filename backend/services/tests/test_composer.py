from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, override_settings

from common.utils.geo import Coordinates, calculate_distance
from services.exceptions import ProviderError
from services.routing import RouteComposer, polyline, stitch_segments
from services.routing.providers import (
	OsrmRoutingProvider,
	PgRoutingProvider,
	RouteSegment,
	build_provider,
	fetch_segments,
)
from .fakes import ScriptedProvider, StraightLineProvider


def segment(points, agg_cost=0.0, agg_time=0.0):
	return RouteSegment(geometry=points, cost=0.0, time_cost=0.0, agg_cost=agg_cost, agg_time_cost=agg_time)


class StitchSegmentsTests(SimpleTestCase):
	def test_forward_segments_share_junction_once(self):
		stitched = stitch_segments([
			segment([[0, 0], [1, 0]]),
			segment([[1, 0], [2, 0], [3, 0]]),
		])
		self.assertEqual(stitched, [[0, 0], [1, 0], [2, 0], [3, 0]])

	def test_reversed_segment_is_flipped(self):
		stitched = stitch_segments([
			segment([[0, 0], [1, 0]]),
			segment([[3, 0], [2, 0], [1, 0]]),
		])
		self.assertEqual(stitched, [[0, 0], [1, 0], [2, 0], [3, 0]])

	def test_empty_geometry_is_ignored(self):
		stitched = stitch_segments([segment([]), segment([[0, 0], [1, 1]])])
		self.assertEqual(stitched, [[0, 0], [1, 1]])

	def test_segment_touching_neither_end_is_dropped(self):
		with self.assertLogs('services.routing.composer', level='WARNING'):
			stitched = stitch_segments([
				segment([[0, 0], [1, 0]]),
				segment([[5, 5], [6, 5]]),
				segment([[1, 0], [2, 0]]),
			])
		self.assertEqual(stitched, [[0, 0], [1, 0], [2, 0]])


@override_settings(ROUTING_MAX_RETRIES=1)
class RouteComposerTests(SimpleTestCase):
	def test_direct_route_uses_cumulative_cost_of_last_segment(self):
		provider = ScriptedProvider([
			segment([[77.20, 28.61], [77.21, 28.61]], agg_cost=1.2, agg_time=90),
			segment([[77.22, 28.62], [77.21, 28.61]], agg_cost=2.5, agg_time=200.7),
		])
		route = RouteComposer(provider).direct_route((28.61, 77.20), (28.62, 77.22))

		self.assertEqual(route.distance, 2.5)
		self.assertEqual(route.duration, 200)
		self.assertEqual(route.end, Coordinates(28.62, 77.22))
		self.assertEqual(
			[tuple(p) for p in polyline.decode(route.polyline)],
			[(28.61, 77.2), (28.61, 77.21), (28.62, 77.22)]
		)

	def test_multistop_sums_legs_and_joins_polylines(self):
		provider = StraightLineProvider()
		composer = RouteComposer(provider)
		start, stop, dest = (28.60, 77.20), (28.62, 77.21), (28.65, 77.25)

		route = composer.multistop_route(start, [stop], dest)
		first = composer.direct_route(start, stop)
		second = composer.direct_route(stop, dest)

		self.assertAlmostEqual(route.distance, first.distance + second.distance)
		self.assertEqual(route.duration, first.duration + second.duration)
		self.assertEqual(len(polyline.decode(route.polyline)), 3)
		self.assertEqual(route.waypoints, (Coordinates(28.62, 77.21),))

	def test_multistop_without_waypoints_is_direct_route(self):
		composer = RouteComposer(StraightLineProvider())
		start, dest = (28.60, 77.20), (28.65, 77.25)

		self.assertEqual(composer.multistop_route(start, [], dest), composer.direct_route(start, dest))

	def test_leg_cache_avoids_repeat_provider_calls(self):
		provider = StraightLineProvider()
		composer = RouteComposer(provider).with_leg_cache()

		composer.direct_route((28.60, 77.20), (28.65, 77.25))
		composer.direct_route((28.60, 77.20), (28.65, 77.25))

		self.assertEqual(len(provider.calls), 1)

	def test_provider_failure_surfaces_as_provider_error(self):
		composer = RouteComposer(StraightLineProvider(failing=[(28.65, 77.25)]))
		with self.assertRaises(ProviderError):
			composer.direct_route((28.60, 77.20), (28.65, 77.25))

	def test_empty_route_is_an_error(self):
		with self.assertRaises(ProviderError):
			RouteComposer(ScriptedProvider([])).direct_route((28.60, 77.20), (28.65, 77.25))

	def test_identical_endpoints_are_a_zero_route(self):
		provider = StraightLineProvider()

		route = RouteComposer(provider).direct_route((28.60, 77.20), (28.60, 77.20))

		self.assertEqual(route.distance, 0.0)
		self.assertEqual(route.duration, 0)
		self.assertEqual(polyline.decode(route.polyline), [Coordinates(28.6, 77.2), Coordinates(28.6, 77.2)])
		self.assertEqual(provider.calls, [])


class FetchSegmentsTests(SimpleTestCase):
	@patch('services.routing.providers.time.sleep')
	def test_retries_with_backoff_then_succeeds(self, mock_sleep):
		provider = MagicMock()
		provider.name = 'mock'
		good = [segment([[0, 0], [1, 1]], agg_cost=1.0, agg_time=60)]
		provider.route.side_effect = [requests.ConnectionError('down'), requests.Timeout('slow'), good]

		segments = fetch_segments(provider, 0, 0, 1, 1, max_retries=3, backoff_seconds=0.5)

		self.assertEqual(segments, good)
		self.assertEqual(provider.route.call_count, 3)
		self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [0.5, 1.0])

	@patch('services.routing.providers.time.sleep')
	def test_exhausted_retries_raise_provider_error(self, mock_sleep):
		provider = MagicMock()
		provider.name = 'mock'
		provider.route.side_effect = requests.ConnectionError('down')

		with self.assertRaises(ProviderError):
			fetch_segments(provider, 0, 0, 1, 1, max_retries=2, backoff_seconds=0.1)
		self.assertEqual(provider.route.call_count, 2)


class ProviderTests(SimpleTestCase):
	def test_osrm_steps_become_segments_in_km(self):
		response = MagicMock()
		response.json.return_value = {
			"code": "Ok",
			"routes": [{"legs": [{"steps": [
				{"distance": 1500.0, "duration": 120.0,
				 "geometry": {"coordinates": [[77.20, 28.60], [77.21, 28.61]]}},
				{"distance": 500.0, "duration": 30.0,
				 "geometry": {"coordinates": [[77.21, 28.61], [77.22, 28.61]]}},
				{"distance": 0.0, "duration": 0.0,
				 "geometry": {"coordinates": [[77.22, 28.61], [77.22, 28.61]]}},
			]}]}],
		}
		session = MagicMock()
		session.get.return_value = response

		provider = OsrmRoutingProvider(base_url="http://osrm.test/", timeout_seconds=4, session=session)
		segments = provider.route(77.20, 28.60, 77.22, 28.61)

		session.get.assert_called_once()
		self.assertEqual(session.get.call_args.args[0], "http://osrm.test/route/v1/driving/77.2,28.6;77.22,28.61")
		self.assertEqual(session.get.call_args.kwargs["timeout"], 4)
		self.assertEqual(len(segments), 2)
		self.assertAlmostEqual(segments[-1].agg_cost, 2.0)
		self.assertAlmostEqual(segments[-1].agg_time_cost, 150.0)

	def test_osrm_error_code_raises(self):
		response = MagicMock()
		response.json.return_value = {"code": "NoRoute", "message": "Impossible route"}
		session = MagicMock()
		session.get.return_value = response

		with self.assertRaises(ProviderError):
			OsrmRoutingProvider(base_url="http://osrm.test", session=session).route(0, 0, 1, 1)

	def test_osrm_zero_distance_route_is_valid(self):
		response = MagicMock()
		response.json.return_value = {
			"code": "Ok",
			"routes": [{"distance": 0.0, "duration": 0.0, "legs": [{"steps": [
				{"distance": 0.0, "duration": 0.0,
				 "geometry": {"coordinates": [[77.20, 28.60], [77.20, 28.60]]}},
				{"distance": 0.0, "duration": 0.0,
				 "geometry": {"coordinates": [[77.20, 28.60], [77.20, 28.60]]}},
			]}]}],
		}
		session = MagicMock()
		session.get.return_value = response
		composer = RouteComposer(OsrmRoutingProvider(base_url="http://osrm.test", session=session))

		route = composer.direct_route((28.60, 77.20), (28.6001, 77.2001))

		self.assertEqual(route.distance, 0.0)
		self.assertEqual(route.duration, 0)
		self.assertEqual(len(polyline.decode(route.polyline)), 2)

	@patch('services.routing.providers.transaction')
	@patch('services.routing.providers.connections')
	def test_pgrouting_no_edges_between_snapped_points(self, mock_connections, mock_transaction):
		connection = mock_connections.__getitem__.return_value
		connection.vendor = 'sqlite'
		connection.cursor.return_value.__enter__.return_value.fetchall.return_value = []
		provider = PgRoutingProvider(timeout_seconds=1)

		segments = provider.route(77.2000, 28.6000, 77.2001, 28.6001)
		self.assertEqual(len(segments), 1)
		self.assertEqual(segments[0].agg_cost, 0.0)

		# Far apart with no edges is still no path
		self.assertEqual(provider.route(77.20, 28.60, 77.30, 28.70), [])

	def test_build_provider(self):
		self.assertIsInstance(build_provider("pgrouting"), PgRoutingProvider)
		self.assertIsInstance(build_provider("osrm"), OsrmRoutingProvider)
		with self.assertRaises(ValueError):
			build_provider("carrier-pigeon")


class StraightLineProviderTests(SimpleTestCase):
	def test_distance_is_haversine_km(self):
		segments = StraightLineProvider().route(77.20, 28.60, 77.25, 28.65)
		expected = calculate_distance(28.60, 77.20, 28.65, 77.25) / 1000.0
		self.assertAlmostEqual(segments[0].agg_cost, expected)
