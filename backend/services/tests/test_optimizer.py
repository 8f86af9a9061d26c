from unittest.mock import patch

from django.test import SimpleTestCase, override_settings

from common.utils.geo import Coordinates
from services.routing import RouteComposer, best_order
from services.routing.optimizer import nearest_neighbour_order
from .fakes import StraightLineProvider

ORIGINAL_MULTISTOP = RouteComposer.multistop_route

# Points along the equator, driver heading east
START = Coordinates(0.0, 0.0)
DEST = Coordinates(0.0, 0.1)
NEAR = Coordinates(0.0, 0.02)
MIDDLE = Coordinates(0.0, 0.05)
FAR = Coordinates(0.0, 0.08)


@override_settings(ROUTING_MAX_RETRIES=1)
class BestOrderTests(SimpleTestCase):
	def setUp(self):
		self.composer = RouteComposer(StraightLineProvider())

	def test_no_waypoints_is_direct_route(self):
		route = best_order(START, [], DEST, composer=self.composer)
		self.assertEqual(route, self.composer.direct_route(START, DEST))

	def test_single_waypoint_has_one_ordering(self):
		route = best_order(START, [FAR], DEST, composer=self.composer)

		self.assertEqual(route.waypoints, (FAR,))
		self.assertEqual(route, self.composer.multistop_route(START, [FAR], DEST))

	def test_two_waypoints_evaluate_both_orders(self):
		with patch.object(RouteComposer, 'multistop_route', autospec=True, side_effect=ORIGINAL_MULTISTOP) as spy:
			route = best_order(START, [FAR, NEAR], DEST, composer=self.composer)

		orders = [tuple(c.args[2]) for c in spy.call_args_list]
		self.assertEqual(orders, [(FAR, NEAR), (NEAR, FAR)])
		self.assertEqual(route.waypoints, (NEAR, FAR))

		worse = self.composer.multistop_route(START, [FAR, NEAR], DEST)
		self.assertLess(route.distance, worse.distance)

	def test_ties_keep_first_order_found(self):
		# Round trip with mirrored stops: both orders cost the same
		north = Coordinates(0.01, 0.0)
		south = Coordinates(-0.01, 0.0)

		route = best_order(START, [north, south], START, composer=self.composer)

		self.assertEqual(route.waypoints, (north, south))

	def test_above_cap_falls_back_to_nearest_neighbour(self):
		with patch.object(RouteComposer, 'multistop_route', autospec=True, side_effect=ORIGINAL_MULTISTOP) as spy:
			with self.assertLogs('services.routing.optimizer', level='WARNING'):
				route = best_order(START, [FAR, MIDDLE, NEAR], DEST, composer=self.composer, max_waypoints=2)

		self.assertEqual(spy.call_count, 1)
		self.assertEqual(route.waypoints, (NEAR, MIDDLE, FAR))

	def test_nearest_neighbour_order(self):
		self.assertEqual(nearest_neighbour_order(START, [FAR, NEAR, MIDDLE]), [NEAR, MIDDLE, FAR])
