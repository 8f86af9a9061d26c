from django.test import SimpleTestCase

from services.exceptions import ValidationError
from services.routing import polyline

CANONICAL_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
CANONICAL_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


class PolylineCodecTests(SimpleTestCase):
	def test_encode_matches_canonical_vector(self):
		self.assertEqual(polyline.encode(CANONICAL_POINTS), CANONICAL_POLYLINE)

	def test_decode_canonical_vector(self):
		points = polyline.decode(CANONICAL_POLYLINE)

		self.assertEqual(len(points), 3)
		for (lat, lon), (expected_lat, expected_lon) in zip(points, CANONICAL_POINTS):
			self.assertAlmostEqual(lat, expected_lat, places=5)
			self.assertAlmostEqual(lon, expected_lon, places=5)

	def test_round_trip_keeps_five_decimals(self):
		points = [(28.613912, 77.209021), (-33.868820, 151.209296), (0.0, 0.0), (-0.000015, 179.99999)]

		decoded = polyline.decode(polyline.encode(points))

		self.assertEqual(len(decoded), len(points))
		for (lat, lon), (expected_lat, expected_lon) in zip(decoded, points):
			self.assertLessEqual(abs(lat - expected_lat), 1e-5)
			self.assertLessEqual(abs(lon - expected_lon), 1e-5)

	def test_empty_input(self):
		self.assertEqual(polyline.encode([]), "")
		self.assertEqual(polyline.decode(""), [])

	def test_decode_rejects_truncated_input(self):
		with self.assertRaises(ValidationError):
			polyline.decode(CANONICAL_POLYLINE[:-1])

	def test_combine_laws(self):
		first = polyline.encode([(38.5, -120.2), (40.7, -120.95)])
		second = polyline.encode([(40.7, -120.95), (43.252, -126.453)])

		self.assertEqual(polyline.combine([]), "")
		self.assertEqual(polyline.combine([first]), first)

		combined = polyline.combine([first, second])
		self.assertEqual(
			len(polyline.decode(combined)),
			len(polyline.decode(first)) + len(polyline.decode(second)) - 1
		)
		self.assertEqual(combined, CANONICAL_POLYLINE)
