from decimal import Decimal
from io import StringIO
import threading
from unittest.mock import patch

from django.core.management import call_command
from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings, skipUnlessDBFeature
from rest_framework.test import APIClient

from accounts.models import User
from common.utils import SingleFlightGuard
from common.utils.geo import Coordinates
from drivers.models import DriverProfile
from realtime.models import Notification
from services import ride_management
from services.exceptions import ConflictError, ForbiddenError, NotFoundError, StateError, ValidationError
from services.ride_management.ride_lifecycle import BLOCKING_RIDE_STATUSES
from services.routing import RouteComposer
from services.tests.fakes import StraightLineProvider

from .models import Proposal, Ride, RideRequest
from .tasks import create_new_request_notifications_task

DESTINATION = Coordinates(28.6500, 77.2500)


def straight_line_composer(failing=()):
	return RouteComposer(StraightLineProvider(failing=failing))


class RideFixtureMixin:
	def setUp(self):
		self.driver = User.objects.create_user(
			username='driver',
			password='driver1234',
			role='driver',
			first_name='Dev',
			last_name='Driver'
		)
		self.passenger_one = User.objects.create_user(
			username='passenger_one',
			password='pass1234',
			role='passenger'
		)
		self.passenger_two = User.objects.create_user(
			username='passenger_two',
			password='pass1234',
			role='passenger'
		)

		self.request_one = RideRequest.objects.create(
			passenger=self.passenger_one,
			pickup_latitude=Decimal('28.613900'),
			pickup_longitude=Decimal('77.209000'),
			pickup_address='Connaught Place',
			dropoff_latitude=Decimal('28.612900'),
			dropoff_longitude=Decimal('77.229500'),
			dropoff_address='India Gate',
			compensation=Decimal('4.50')
		)
		self.request_two = RideRequest.objects.create(
			passenger=self.passenger_two,
			pickup_latitude=Decimal('28.620000'),
			pickup_longitude=Decimal('77.215000'),
			pickup_address='Janpath',
			dropoff_latitude=Decimal('28.640000'),
			dropoff_longitude=Decimal('77.240000'),
			dropoff_address='Red Fort',
			compensation=Decimal('6.00')
		)

	def draft(self):
		return ride_management.draft_ride(
			[self.request_one.id, self.request_two.id],
			self.driver,
			DESTINATION
		)

	def proposal_for(self, proposals, request):
		return next(p for p in proposals if p.request_id == request.id)


class ProposalLifecycleTests(RideFixtureMixin, TestCase):
	def test_draft_creates_pending_ride_and_proposals(self):
		ride, proposals = self.draft()

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_PENDING)
		self.assertEqual(len(proposals), 2)
		self.assertTrue(all(p.status == Proposal.STATUS_PENDING for p in proposals))
		self.assertEqual({p.driver_id for p in proposals}, {self.driver.id})

		notified = Notification.objects.filter(ride=ride).values_list('account_id', flat=True)
		self.assertEqual(sorted(notified), sorted([self.passenger_one.id, self.passenger_two.id]))

	def test_one_reject_one_accept_starts_ride(self):
		ride, proposals = self.draft()

		ride_management.confirm_proposal(self.proposal_for(proposals, self.request_one).id, 'reject')
		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_PENDING)

		ride_management.confirm_proposal(self.proposal_for(proposals, self.request_two).id, 'accept')

		ride.refresh_from_db()
		self.request_one.refresh_from_db()
		self.request_two.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_IN_PROGRESS)
		self.assertEqual(self.request_two.ride, ride)
		self.assertIsNone(self.request_one.ride)
		self.assertIn(self.request_one, ride_management.get_active_ride_requests())
		self.assertNotIn(self.request_two, ride_management.get_active_ride_requests())

		finalized = Notification.objects.filter(ride=ride, payload__notification='ride_finalized')
		self.assertEqual(
			sorted(finalized.values_list('account_id', flat=True)),
			sorted([self.driver.id, self.passenger_two.id])
		)

	def test_all_rejected_rejects_ride(self):
		ride, proposals = self.draft()

		for proposal in proposals:
			ride_management.confirm_proposal(proposal.id, 'reject')

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_REJECTED)
		self.assertFalse(RideRequest.objects.filter(ride__isnull=False).exists())

	def test_proposal_can_only_be_answered_once(self):
		ride, proposals = self.draft()
		proposal = proposals[0]

		ride_management.confirm_proposal(proposal.id, 'accept')
		with self.assertRaises(StateError):
			ride_management.confirm_proposal(proposal.id, 'reject')

		proposal.refresh_from_db()
		self.assertEqual(proposal.status, Proposal.STATUS_ACCEPTED)

	def test_only_request_owner_can_answer(self):
		ride, proposals = self.draft()

		with self.assertRaises(ForbiddenError):
			ride_management.confirm_proposal(
				self.proposal_for(proposals, self.request_one).id, 'accept', passenger=self.passenger_two
			)

	def test_unknown_decision_and_proposal(self):
		ride, proposals = self.draft()

		with self.assertRaises(ValidationError):
			ride_management.confirm_proposal(proposals[0].id, 'maybe')
		with self.assertRaises(NotFoundError):
			ride_management.confirm_proposal(999999, 'accept')

	def test_draft_rejects_requests_of_active_ride(self):
		ride, proposals = self.draft()
		for proposal in proposals:
			ride_management.confirm_proposal(proposal.id, 'accept')

		other_driver = User.objects.create_user(username='other', password='driver1234', role='driver')
		with self.assertRaises(ConflictError):
			ride_management.draft_ride([self.request_one.id], other_driver, DESTINATION)

	def test_requests_of_rejected_ride_can_be_drafted_again(self):
		ride, proposals = self.draft()
		for proposal in proposals:
			ride_management.confirm_proposal(proposal.id, 'reject')

		self.assertEqual(BLOCKING_RIDE_STATUSES, (Ride.STATUS_IN_PROGRESS, Ride.STATUS_COMPLETED))
		again, _ = self.draft()
		self.assertEqual(again.status, Ride.STATUS_PENDING)

	def test_draft_is_all_or_nothing(self):
		with self.assertRaises(NotFoundError):
			ride_management.draft_ride([self.request_one.id, 999999], self.driver, DESTINATION)

		self.assertFalse(Ride.objects.exists())
		self.assertFalse(Proposal.objects.exists())

	def test_draft_validates_ids(self):
		with self.assertRaises(ValidationError):
			ride_management.draft_ride([], self.driver, DESTINATION)
		with self.assertRaises(ValidationError):
			ride_management.draft_ride([self.request_one.id, self.request_one.id], self.driver, DESTINATION)

	def test_request_can_be_proposed_by_several_pending_rides(self):
		self.draft()
		other_driver = User.objects.create_user(username='other', password='driver1234', role='driver')

		ride, proposals = ride_management.draft_ride([self.request_one.id], other_driver, DESTINATION)

		self.assertEqual(ride.status, Ride.STATUS_PENDING)
		self.assertEqual(len(proposals), 1)

	def test_accepting_request_taken_by_another_ride_conflicts(self):
		first_ride, first_proposals = ride_management.draft_ride([self.request_one.id], self.driver, DESTINATION)
		other_driver = User.objects.create_user(username='other', password='driver1234', role='driver')
		second_ride, second_proposals = ride_management.draft_ride([self.request_one.id], other_driver, DESTINATION)

		ride_management.confirm_proposal(first_proposals[0].id, 'accept')
		with self.assertRaises(ConflictError):
			ride_management.confirm_proposal(second_proposals[0].id, 'accept')

		second_ride.refresh_from_db()
		self.request_one.refresh_from_db()
		self.assertEqual(second_ride.status, Ride.STATUS_PENDING)
		self.assertEqual(self.request_one.ride, first_ride)

		ride_management.confirm_proposal(second_proposals[0].id, 'reject')
		second_ride.refresh_from_db()
		self.assertEqual(second_ride.status, Ride.STATUS_REJECTED)

	def test_taken_request_does_not_block_the_other_passenger(self):
		ride, proposals = self.draft()
		other_driver = User.objects.create_user(username='other', password='driver1234', role='driver')
		taken_ride, taken_proposals = ride_management.draft_ride([self.request_one.id], other_driver, DESTINATION)
		ride_management.confirm_proposal(taken_proposals[0].id, 'accept')

		with self.assertRaises(ConflictError):
			ride_management.confirm_proposal(self.proposal_for(proposals, self.request_one).id, 'accept')
		ride_management.confirm_proposal(self.proposal_for(proposals, self.request_one).id, 'reject')
		ride_management.confirm_proposal(self.proposal_for(proposals, self.request_two).id, 'accept')

		ride.refresh_from_db()
		self.request_one.refresh_from_db()
		self.request_two.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_IN_PROGRESS)
		self.assertEqual(self.request_one.ride, taken_ride)
		self.assertEqual(self.request_two.ride, ride)

	def test_request_taken_after_acceptance_is_rejected_on_finalize(self):
		ride, proposals = self.draft()
		ride_management.confirm_proposal(self.proposal_for(proposals, self.request_one).id, 'accept')

		other_driver = User.objects.create_user(username='other', password='driver1234', role='driver')
		taken_ride, taken_proposals = ride_management.draft_ride([self.request_one.id], other_driver, DESTINATION)
		ride_management.confirm_proposal(taken_proposals[0].id, 'accept')

		ride_management.confirm_proposal(self.proposal_for(proposals, self.request_two).id, 'accept')

		ride.refresh_from_db()
		self.request_one.refresh_from_db()
		self.request_two.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_IN_PROGRESS)
		self.assertEqual(self.request_one.ride, taken_ride)
		self.assertEqual(self.request_two.ride, ride)
		self.assertEqual(
			Proposal.objects.get(ride=ride, request=self.request_one).status,
			Proposal.STATUS_REJECTED
		)


class RideProgressTests(RideFixtureMixin, TestCase):
	def setUp(self):
		super().setUp()
		self.ride, proposals = self.draft()
		for proposal in proposals:
			ride_management.confirm_proposal(proposal.id, 'accept')
		self.ride.refresh_from_db()

	def test_complete_in_progress_ride(self):
		ride = ride_management.complete_ride(self.ride.id, driver=self.driver)

		self.assertEqual(ride.status, Ride.STATUS_COMPLETED)
		self.driver.refresh_from_db()
		self.passenger_one.refresh_from_db()
		self.assertEqual(self.driver.completed_rides, 1)
		self.assertEqual(self.passenger_one.completed_rides, 1)
		self.assertEqual(
			Notification.objects.filter(ride=ride, payload__notification='ride_completed').count(),
			2
		)

	def test_complete_twice_is_a_state_error(self):
		ride_management.complete_ride(self.ride.id)

		with self.assertRaises(StateError):
			ride_management.complete_ride(self.ride.id)

	def test_only_ride_driver_can_complete(self):
		stranger = User.objects.create_user(username='stranger', password='driver1234', role='driver')

		with self.assertRaises(ForbiddenError):
			ride_management.complete_ride(self.ride.id, driver=stranger)

	def test_mark_visited_picks_nearest_pickup(self):
		# ~30 m from request one's pickup
		visited = ride_management.mark_request_visited(self.ride.id, (28.6142, 77.2090))

		self.assertEqual(visited, self.request_one)
		self.request_one.refresh_from_db()
		self.assertTrue(self.request_one.visited)

		# Request one is never picked again; request two is ~800 m away
		visited = ride_management.mark_request_visited(self.ride.id, (28.6142, 77.2090))
		self.assertEqual(visited, self.request_two)

		with self.assertRaises(ValidationError):
			ride_management.mark_request_visited(self.ride.id, (28.6142, 77.2090))

	def test_mark_visited_too_far(self):
		with self.assertRaises(ConflictError):
			ride_management.mark_request_visited(self.ride.id, (28.7000, 77.3000))

		self.assertFalse(RideRequest.objects.filter(visited=True).exists())

	def test_ride_route_goes_through_unvisited_pickups(self):
		DriverProfile.objects.create(user=self.driver, current_latitude=28.6000, current_longitude=77.2000)
		self.request_one.visited = True
		self.request_one.save()

		route = ride_management.get_ride_route(self.ride.id, composer=straight_line_composer())

		self.assertEqual(route.waypoints, (self.request_two.pickup,))
		self.assertEqual(route.end, DESTINATION)

	def test_history_lists_accepted_requests(self):
		history = ride_management.get_ride_history(self.passenger_one)

		self.assertEqual(len(history), 1)
		ride, requests = history[0]
		self.assertEqual(ride, self.ride)
		self.assertEqual(requests, [self.request_one, self.request_two])


class CompleteRideStateTests(RideFixtureMixin, TestCase):
	def test_pending_ride_cannot_be_completed(self):
		ride, _ = self.draft()

		with self.assertRaises(StateError):
			ride_management.complete_ride(ride.id)

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_PENDING)


class RideRequestIntakeTests(RideFixtureMixin, TestCase):
	def test_passenger_has_one_open_request(self):
		with self.assertRaises(ConflictError):
			ride_management.create_ride_request(
				self.passenger_one, (28.6, 77.2), (28.7, 77.3), '3.00'
			)

	def test_compensation_must_be_positive(self):
		newcomer = User.objects.create_user(username='newcomer', password='pass1234', role='passenger')

		with self.assertRaises(ValidationError):
			ride_management.create_ride_request(newcomer, (28.6, 77.2), (28.7, 77.3), '0')
		with self.assertRaises(ValidationError):
			ride_management.create_ride_request(newcomer, (98.6, 77.2), (28.7, 77.3), '3.00')

	def test_new_requests_are_announced_once(self):
		create_new_request_notifications_task()
		create_new_request_notifications_task()

		self.assertEqual(Notification.objects.filter(account=self.driver).count(), 2)

	def test_announcement_is_skipped_while_previous_run_holds_guard(self):
		guard = SingleFlightGuard('new_request_notifications')
		self.assertTrue(guard.acquire())
		try:
			self.assertIsNone(create_new_request_notifications_task())
		finally:
			guard.release()

		self.assertFalse(Notification.objects.exists())


@override_settings(ROUTING_MAX_RETRIES=1)
class RideApiTests(RideFixtureMixin, TestCase):
	def setUp(self):
		super().setUp()
		self.client = APIClient()

	def test_passenger_creates_request(self):
		newcomer = User.objects.create_user(username='newcomer', password='pass1234', role='passenger')
		self.client.force_authenticate(newcomer)

		response = self.client.post('/api/rides/requests/', {
			'pickup_latitude': 28.6,
			'pickup_longitude': 77.2,
			'pickup_address': 'Home',
			'dropoff_latitude': 28.7,
			'dropoff_longitude': 77.3,
			'dropoff_address': 'Work',
			'compensation': '3.50',
		}, format='json')

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['passenger_id'], newcomer.id)
		self.assertIsNone(response.data['ride_id'])

	def test_second_open_request_is_a_conflict(self):
		self.client.force_authenticate(self.passenger_one)

		response = self.client.post('/api/rides/requests/', {
			'pickup_latitude': 28.6,
			'pickup_longitude': 77.2,
			'dropoff_latitude': 28.7,
			'dropoff_longitude': 77.3,
			'compensation': '3.50',
		}, format='json')

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data, {
			'success': False,
			'error': 'conflict',
			'message': 'You already have an open ride request',
		})

	def test_driver_listing_ranks_by_detour(self):
		DriverProfile.objects.create(user=self.driver, current_latitude=28.6100, current_longitude=77.2050)
		self.client.force_authenticate(self.driver)

		with patch('services.matching.detour.get_route_composer', return_value=straight_line_composer()):
			response = self.client.get('/api/rides/requests/', {
				'dropoff_lat': 28.65,
				'dropoff_lon': 77.25,
				'distance_m': 100000,
			})

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['polyline'])
		self.assertEqual(
			sorted(r['id'] for r in response.data['requests']),
			sorted([self.request_one.id, self.request_two.id])
		)
		self.assertIn('detour_distance_m', response.data['requests'][0])

	def test_driver_listing_requires_location(self):
		self.client.force_authenticate(self.driver)

		response = self.client.get('/api/rides/requests/', {'dropoff_lat': 28.65, 'dropoff_lon': 77.25})

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'validation_error')

	def test_passenger_cannot_draft(self):
		self.client.force_authenticate(self.passenger_one)

		response = self.client.post('/api/rides/drafts/', {
			'request_ids': [self.request_one.id],
			'destination_lat': 28.65,
			'destination_lon': 77.25,
		}, format='json')

		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['error'], 'forbidden')

	def test_draft_and_confirm_flow(self):
		self.client.force_authenticate(self.driver)
		response = self.client.post('/api/rides/drafts/', {
			'request_ids': [self.request_one.id, self.request_two.id],
			'destination_lat': 28.65,
			'destination_lon': 77.25,
		}, format='json')

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['status'], 'pending')
		proposals = {p['request_id']: p['id'] for p in response.data['proposals']}

		self.client.force_authenticate(self.passenger_one)
		response = self.client.post(
			f'/api/rides/proposals/{proposals[self.request_one.id]}/confirm/', {'confirm': 'accept'}, format='json'
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['proposal_status'], 'accepted')
		self.assertEqual(response.data['ride_status'], 'pending')

		response = self.client.post(
			f'/api/rides/proposals/{proposals[self.request_one.id]}/confirm/', {'confirm': 'reject'}, format='json'
		)
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'invalid_state')

		self.client.force_authenticate(self.passenger_two)
		response = self.client.post(
			f'/api/rides/proposals/{proposals[self.request_two.id]}/confirm/', {'confirm': 'reject'}, format='json'
		)
		self.assertEqual(response.data['ride_status'], 'in_progress')

	def test_proposal_route_view(self):
		ride, proposals = self.draft()
		DriverProfile.objects.create(user=self.driver, current_latitude=28.6000, current_longitude=77.2000)
		self.client.force_authenticate(self.passenger_one)

		with patch('services.routing.optimizer.get_route_composer', return_value=straight_line_composer()):
			response = self.client.get(f'/api/rides/proposals/{self.proposal_for(proposals, self.request_one).id}/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['ride_id'], ride.id)
		self.assertGreater(response.data['distance'], 0)

	def test_summary_permissions(self):
		ride, _ = self.draft()
		outsider = User.objects.create_user(username='outsider', password='pass1234', role='passenger')

		self.client.force_authenticate(outsider)
		self.assertEqual(self.client.get(f'/api/rides/{ride.id}/').status_code, 403)

		self.client.force_authenticate(self.passenger_two)
		response = self.client.get(f'/api/rides/{ride.id}/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['proposals']), 2)

		self.assertEqual(self.client.get('/api/rides/999999/').status_code, 404)

	def test_visit_and_complete(self):
		ride, proposals = self.draft()
		for proposal in proposals:
			ride_management.confirm_proposal(proposal.id, 'accept')
		self.client.force_authenticate(self.driver)

		response = self.client.post(f'/api/rides/{ride.id}/visit/', {'current_lat': 28.7, 'current_lon': 77.3}, format='json')
		self.assertEqual(response.status_code, 409)

		response = self.client.post(f'/api/rides/{ride.id}/visit/', {'current_lat': 28.6139, 'current_lon': 77.209}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['request']['id'], self.request_one.id)

		response = self.client.post(f'/api/rides/{ride.id}/complete/')
		self.assertEqual(response.status_code, 200)
		response = self.client.post(f'/api/rides/{ride.id}/complete/')
		self.assertEqual(response.status_code, 409)

	def test_maps_route_provider_failure_is_bad_gateway(self):
		self.client.force_authenticate(self.passenger_one)

		with patch('rides.views.get_route_composer', return_value=straight_line_composer(failing=[(28.7, 77.3)])):
			response = self.client.get('/api/maps/route/', {
				'start_lat': 28.6, 'start_lng': 77.2, 'end_lat': 28.7, 'end_lng': 77.3,
			})

		self.assertEqual(response.status_code, 502)
		self.assertEqual(response.data['error'], 'routing_provider_error')

	def test_maps_route(self):
		self.client.force_authenticate(self.passenger_one)

		with patch('rides.views.get_route_composer', return_value=straight_line_composer()):
			response = self.client.get('/api/maps/route/', {
				'start_lat': 28.6, 'start_lng': 77.2, 'end_lat': 28.7, 'end_lng': 77.3,
			})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['end_lat'], 28.7)
		self.assertTrue(response.data['polyline'])

	def test_compensation_estimate(self):
		response = self.client.post('/api/rides/compensation-estimate/', {
			'start_latitude': 0, 'start_longitude': 0, 'end_latitude': 0, 'end_longitude': 1,
		}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['distance_km'], 111.19)

	def test_history(self):
		self.draft()
		self.client.force_authenticate(self.driver)

		response = self.client.get('/api/rides/history/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['rides']), 1)
		self.assertEqual(response.data['rides'][0]['requests'], [])

	def test_history_limit_is_clamped(self):
		self.draft()
		self.client.force_authenticate(self.driver)

		response = self.client.get('/api/rides/history/', {'limit': -1})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['rides']), 1)

	def test_request_detail(self):
		self.client.force_authenticate(self.passenger_one)
		response = self.client.get(f'/api/rides/requests/{self.request_one.id}/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['pickup_address'], 'Connaught Place')

		self.assertEqual(self.client.get(f'/api/rides/requests/{self.request_two.id}/').status_code, 403)
		self.assertEqual(self.client.get('/api/rides/requests/999999/').status_code, 404)

		self.client.force_authenticate(self.driver)
		self.assertEqual(self.client.get(f'/api/rides/requests/{self.request_two.id}/').status_code, 200)


class ManagementCommandTests(RideFixtureMixin, TestCase):
	def test_dry_run_keeps_data(self):
		ride, proposals = self.draft()
		for proposal in proposals:
			ride_management.confirm_proposal(proposal.id, 'reject')
		Ride.objects.filter(id=ride.id).update(updated_at='2000-01-01T00:00:00Z')

		call_command('cleanup_old_data', days=30, dry_run=True)
		self.assertTrue(Ride.objects.filter(id=ride.id).exists())

		call_command('cleanup_old_data', days=30)
		self.assertFalse(Ride.objects.filter(id=ride.id).exists())
		self.assertTrue(RideRequest.objects.filter(id=self.request_one.id).exists())

	def test_run_ride_jobs_announces_requests(self):
		out = StringIO()

		call_command('run_ride_jobs', job=['new-requests'], stdout=out)

		self.assertIn('new-requests: 2', out.getvalue())
		self.assertTrue(RideRequest.objects.filter(notifications_created=True).exists())


@skipUnlessDBFeature('has_select_for_update')
class ConcurrentConfirmationTests(RideFixtureMixin, TransactionTestCase):
	def answer_concurrently(self, answers):
		barrier = threading.Barrier(len(answers))
		errors = []

		def answer(proposal_id, decision):
			try:
				barrier.wait()
				ride_management.confirm_proposal(proposal_id, decision)
			except Exception as e:
				errors.append(e)
			finally:
				connection.close()

		threads = [threading.Thread(target=answer, args=pair) for pair in answers]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()
		return errors

	def test_last_two_acceptances_finalize_once(self):
		ride, proposals = self.draft()

		errors = self.answer_concurrently([(p.id, 'accept') for p in proposals])

		self.assertEqual(errors, [])
		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_IN_PROGRESS)
		self.assertEqual(
			set(RideRequest.objects.filter(ride=ride).values_list('id', flat=True)),
			{self.request_one.id, self.request_two.id}
		)
		self.assertEqual(
			Notification.objects.filter(account=self.driver, payload__notification='ride_finalized').count(),
			1
		)

	def test_concurrent_accept_and_reject(self):
		ride, proposals = self.draft()

		errors = self.answer_concurrently([
			(self.proposal_for(proposals, self.request_one).id, 'reject'),
			(self.proposal_for(proposals, self.request_two).id, 'accept'),
		])

		self.assertEqual(errors, [])
		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_IN_PROGRESS)
		self.assertEqual(list(RideRequest.objects.filter(ride=ride)), [self.request_two])
