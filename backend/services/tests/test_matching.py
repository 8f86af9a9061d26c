from decimal import Decimal

from django.test import TestCase, override_settings

from accounts.models import User
from common.utils.geo import Coordinates
from drivers.models import DriverProfile
from realtime.models import Notification
from rides.models import Proposal, Ride, RideRequest
from services.exceptions import ProviderError
from services.matching import (
	check_all_in_progress_rides,
	check_ride_proximity,
	evaluate_detour,
	find_candidate_requests,
	find_nearby_pickups,
)
from services.routing import RouteComposer
from .fakes import StraightLineProvider

START = Coordinates(0.0, 0.0)
DEST = Coordinates(0.0, 0.1)


def make_request(passenger, lat, lon, compensation='5.00'):
	return RideRequest.objects.create(
		passenger=passenger,
		pickup_latitude=lat,
		pickup_longitude=lon,
		pickup_address='pickup',
		dropoff_latitude=0.0,
		dropoff_longitude=0.1,
		dropoff_address='dropoff',
		compensation=Decimal(compensation),
	)


@override_settings(ROUTING_MAX_RETRIES=1)
class DetourEvaluatorTests(TestCase):
	def setUp(self):
		self.passengers = [
			User.objects.create_user(username=f'passenger{i}', password='pass1234', role='passenger')
			for i in range(3)
		]
		self.on_path = make_request(self.passengers[0], 0.0, 0.05)
		self.off_path = make_request(self.passengers[1], 0.05, 0.05)
		self.broken = make_request(self.passengers[2], 0.0, 0.07)

	def test_evaluate_detour_is_difference_to_baseline(self):
		composer = RouteComposer(StraightLineProvider())

		detour = evaluate_detour(START, DEST, self.off_path, composer=composer)

		baseline = composer.direct_route(START, DEST)
		with_stop = composer.multistop_route(START, [self.off_path.pickup], DEST)
		self.assertAlmostEqual(detour.distance_km, with_stop.distance - baseline.distance)
		self.assertEqual(detour.duration_s, with_stop.duration - baseline.duration)
		self.assertEqual(detour.polyline, with_stop.polyline)
		self.assertGreater(detour.distance_meters, 1000)

	def test_thresholds_filter_candidates(self):
		composer = RouteComposer(StraightLineProvider())

		listing = find_candidate_requests(
			START, DEST,
			requests=[self.on_path, self.off_path],
			max_detour_meters=100,
			composer=composer,
		)

		self.assertEqual([c.request.id for c in listing.candidates], [self.on_path.id])
		self.assertEqual(listing.polyline, composer.direct_route(START, DEST).polyline)

		listing = find_candidate_requests(
			START, DEST,
			requests=[self.on_path, self.off_path],
			max_detour_seconds=10,
			composer=composer,
		)
		self.assertEqual([c.request.id for c in listing.candidates], [self.on_path.id])

	def test_failing_candidate_is_skipped_and_reported(self):
		composer = RouteComposer(StraightLineProvider(failing=[(0.0, 0.07)]))

		listing = find_candidate_requests(START, DEST, composer=composer)

		self.assertEqual(listing.failures, [self.broken.id])
		self.assertEqual(
			sorted(c.request.id for c in listing.candidates),
			sorted([self.on_path.id, self.off_path.id])
		)

	def test_failing_candidate_aborts_without_skip(self):
		composer = RouteComposer(StraightLineProvider(failing=[(0.0, 0.07)]))

		with self.assertRaises(ProviderError):
			find_candidate_requests(START, DEST, skip_failures=False, composer=composer)

	def test_baseline_failure_aborts_listing(self):
		composer = RouteComposer(StraightLineProvider(failing=[(0.0, 0.1)]))

		with self.assertRaises(ProviderError):
			find_candidate_requests(START, DEST, composer=composer)

	def test_linked_requests_are_not_listed(self):
		ride = Ride.objects.create(status=Ride.STATUS_IN_PROGRESS, destination_latitude=0, destination_longitude=0.1)
		self.off_path.ride = ride
		self.off_path.save()

		listing = find_candidate_requests(
			START, DEST, composer=RouteComposer(StraightLineProvider(failing=[(0.0, 0.07)]))
		)

		self.assertEqual([c.request.id for c in listing.candidates], [self.on_path.id])

	def test_compensation_ceiling(self):
		self.off_path.compensation = Decimal('50.00')
		self.off_path.save()

		listing = find_candidate_requests(
			START, DEST,
			max_compensation=Decimal('10.00'),
			composer=RouteComposer(StraightLineProvider(failing=[(0.0, 0.07)])),
		)

		self.assertNotIn(self.off_path.id, [c.request.id for c in listing.candidates])


class ProximityMonitorTests(TestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.near_passenger = User.objects.create_user(username='near', password='pass1234', role='passenger')
		self.far_passenger = User.objects.create_user(username='far', password='pass1234', role='passenger')

		self.ride = Ride.objects.create(
			status=Ride.STATUS_IN_PROGRESS,
			destination_latitude=28.70,
			destination_longitude=77.30,
		)
		# ~55 m north of the driver
		self.near = make_request(self.near_passenger, 28.6005, 77.2000)
		# ~1.1 km north of the driver
		self.far = make_request(self.far_passenger, 28.6100, 77.2000)
		for request in (self.near, self.far):
			Proposal.objects.create(ride=self.ride, request=request, driver=self.driver, status=Proposal.STATUS_ACCEPTED)
			request.ride = self.ride
			request.save()

		DriverProfile.objects.create(user=self.driver, current_latitude=28.6000, current_longitude=77.2000)

	def test_find_nearby_pickups_uses_radius(self):
		nearby = find_nearby_pickups(Coordinates(28.6, 77.2), [self.near, self.far], radius_meters=100)

		self.assertEqual([r.id for r, _ in nearby], [self.near.id])
		self.assertLess(nearby[0][1], 100)

	def test_proximity_notification_is_sent_once(self):
		self.assertEqual(check_ride_proximity(self.ride), 1)
		self.assertEqual(check_ride_proximity(self.ride), 0)

		notifications = Notification.objects.filter(notification_type=Notification.TYPE_PROXIMITY)
		self.assertEqual(notifications.count(), 1)
		notification = notifications.get()
		self.assertEqual(notification.account, self.near_passenger)
		self.assertEqual(notification.driver, self.driver)
		self.assertEqual(notification.ride, self.ride)

	def test_visited_pickups_are_ignored(self):
		self.near.visited = True
		self.near.save()

		self.assertEqual(check_ride_proximity(self.ride), 0)

	def test_driver_without_location_is_skipped(self):
		DriverProfile.objects.filter(user=self.driver).update(current_latitude=None, current_longitude=None)

		self.assertEqual(check_ride_proximity(self.ride), 0)

	def test_only_in_progress_rides_are_checked(self):
		Ride.objects.filter(id=self.ride.id).update(status=Ride.STATUS_COMPLETED)

		self.assertEqual(check_all_in_progress_rides(), 0)
