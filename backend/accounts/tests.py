from django.test import TestCase
from rest_framework.test import APIClient

from services.exceptions import ConflictError, NotFoundError, ValidationError

from . import services
from .models import Review, User


class ReviewServiceTests(TestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')

	def test_create_review(self):
		review = services.create_review(self.passenger, self.driver.id, 4, '  Smooth ride  ')

		self.assertEqual(review.reviewer, self.passenger)
		self.assertEqual(review.reviewee, self.driver)
		self.assertEqual(review.comment, 'Smooth ride')

	def test_one_review_per_pair(self):
		services.create_review(self.passenger, self.driver.id, 4, 'Smooth ride')

		with self.assertRaises(ConflictError):
			services.create_review(self.passenger, self.driver.id, 1, 'Changed my mind')
		self.assertEqual(Review.objects.count(), 1)

		# The other direction is a different pair
		services.create_review(self.driver, self.passenger.id, 5, 'On time')

	def test_invalid_reviews(self):
		with self.assertRaises(ValidationError):
			services.create_review(self.passenger, self.passenger.id, 5, 'Great me')
		with self.assertRaises(ValidationError):
			services.create_review(self.passenger, self.driver.id, 6, 'Too good')
		with self.assertRaises(ValidationError):
			services.create_review(self.passenger, self.driver.id, 3, '   ')
		with self.assertRaises(NotFoundError):
			services.create_review(self.passenger, 999999, 3, 'Nobody')

	def test_rating_aggregates_stars(self):
		self.assertEqual(services.get_user_rating(self.driver.id), (None, 0))

		other = User.objects.create_user(username='other', password='pass1234', role='passenger')
		services.create_review(self.passenger, self.driver.id, 4, 'Good')
		services.create_review(other, self.driver.id, 5, 'Great')

		self.assertEqual(services.get_user_rating(self.driver.id), (4.5, 2))


class ReviewApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')
		self.url = f'/api/accounts/{self.driver.id}/reviews/'

	def test_review_then_list(self):
		self.client.force_authenticate(self.passenger)

		response = self.client.post(self.url, {'stars': 5, 'comment': 'Lovely'}, format='json')
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['reviewer_id'], self.passenger.id)

		response = self.client.post(self.url, {'stars': 2, 'comment': 'Again'}, format='json')
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'conflict')

		response = self.client.get(self.url)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['rating'], 5.0)
		self.assertEqual(response.data['num_ratings'], 1)
		self.assertEqual(len(response.data['reviews']), 1)

	def test_self_review_and_bad_input(self):
		self.client.force_authenticate(self.driver)

		response = self.client.post(self.url, {'stars': 5, 'comment': 'Me'}, format='json')
		self.assertEqual(response.status_code, 400)

		response = self.client.post(f'/api/accounts/{self.passenger.id}/reviews/', {'stars': 0, 'comment': 'x'}, format='json')
		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'validation_error')

	def test_unknown_account(self):
		self.client.force_authenticate(self.passenger)

		self.assertEqual(self.client.get('/api/accounts/999999/reviews/').status_code, 404)
