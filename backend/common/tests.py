from django.core.cache import caches
from django.test import SimpleTestCase, override_settings

from common.utils import SingleFlightGuard, calculate_distance, estimate_compensation, validate_coordinates


class HaversineTests(SimpleTestCase):
	def test_zero_for_same_point(self):
		self.assertEqual(calculate_distance(28.6139, 77.2090, 28.6139, 77.2090), 0)

	def test_symmetric(self):
		a = (28.6139, 77.2090)
		b = (19.0760, 72.8777)
		self.assertEqual(calculate_distance(*a, *b), calculate_distance(*b, *a))

	def test_known_distance(self):
		# One degree of longitude on the equator
		self.assertAlmostEqual(calculate_distance(0, 0, 0, 1), 111194.93, places=1)

	def test_validate_coordinates(self):
		self.assertTrue(validate_coordinates(90, -180))
		self.assertFalse(validate_coordinates(90.1, 0))
		self.assertFalse(validate_coordinates(0, 180.5))


@override_settings(COMPENSATION_BASE_FARE=2.0, COMPENSATION_PRICE_PER_KM=0.25)
class CompensationEstimateTests(SimpleTestCase):
	def test_base_fare_plus_distance(self):
		distance_km, estimate = estimate_compensation(0, 0, 0, 1)

		self.assertEqual(distance_km, 111.19)
		self.assertEqual(estimate, round(2.0 + 111.19493 * 0.25, 2))

	def test_zero_distance_costs_base_fare(self):
		self.assertEqual(estimate_compensation(10, 10, 10, 10), (0.0, 2.0))


@override_settings(CACHES={'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache', 'LOCATION': 'single-flight-tests'}})
class SingleFlightGuardTests(SimpleTestCase):
	def tearDown(self):
		caches['default'].clear()

	def test_second_run_is_skipped_while_first_holds(self):
		first = SingleFlightGuard('job', timeout=30)
		second = SingleFlightGuard('job', timeout=30)

		with first.hold() as acquired:
			self.assertTrue(acquired)
			with self.assertLogs('common.utils.single_flight', level='WARNING'):
				with second.hold() as skipped:
					self.assertFalse(skipped)
			self.assertTrue(first.is_held())

		self.assertFalse(first.is_held())

	def test_guard_is_released_on_error(self):
		guard = SingleFlightGuard('failing-job', timeout=30)

		with self.assertRaises(RuntimeError):
			with guard.hold():
				raise RuntimeError('boom')

		self.assertFalse(guard.is_held())

	def test_release_does_not_drop_foreign_lock(self):
		owner = SingleFlightGuard('shared', timeout=30)
		other = SingleFlightGuard('shared', timeout=30)

		self.assertTrue(owner.acquire())
		self.assertFalse(other.acquire())
		other.release()

		self.assertTrue(owner.is_held())
		owner.release()
		self.assertFalse(owner.is_held())
