from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase, TestCase

from accounts.models import User
from rides.models import RideRequest
from .consumers import DriverConsumer, NotificationConsumer
from .models import Notification
from .notifications import (
	EVENT_REQUEST_CREATED,
	dispatch_pending_notifications,
	publish_new_request_notifications,
	publish_notification,
)


class NotificationDispatchTests(TestCase):
	def setUp(self):
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')

	def test_publish_stores_unsent_record(self):
		notification_id = publish_notification(
			self.passenger.id, Notification.TYPE_RIDE_UPDATES, 'hello', payload={'ride_id': 1}
		)

		notification = Notification.objects.get(id=notification_id)
		self.assertFalse(notification.is_sent)
		self.assertEqual(notification.payload, {'ride_id': 1})

	def test_dispatch_sends_oldest_first_in_batches(self):
		ids = [
			publish_notification(self.passenger.id, Notification.TYPE_RIDE_UPDATES, f'message {i}')
			for i in range(3)
		]

		with patch('realtime.notifications._push_to_account') as mock_push:
			sent, failed = dispatch_pending_notifications(batch_size=2)

		self.assertEqual((sent, failed), (2, 0))
		self.assertEqual([c.args[1].id for c in mock_push.call_args_list], ids[:2])
		self.assertEqual(
			list(Notification.objects.filter(is_sent=True).values_list('id', flat=True).order_by('id')),
			ids[:2]
		)
		self.assertIsNotNone(Notification.objects.get(id=ids[0]).sent_at)

	def test_failed_push_stays_queued(self):
		notification_id = publish_notification(self.passenger.id, Notification.TYPE_RIDE_UPDATES, 'hello')

		with patch('realtime.notifications._push_to_account', side_effect=RuntimeError('layer down')):
			sent, failed = dispatch_pending_notifications()

		self.assertEqual((sent, failed), (0, 1))
		self.assertFalse(Notification.objects.get(id=notification_id).is_sent)

	def test_dispatch_reaches_account_group(self):
		publish_notification(self.passenger.id, Notification.TYPE_RIDE_UPDATES, 'hello')
		channel_layer = get_channel_layer()

		with patch('realtime.notifications.async_to_sync') as mock_async_to_sync:
			dispatch_pending_notifications()

		mock_async_to_sync.assert_called_once_with(channel_layer.group_send)
		group, event = mock_async_to_sync.return_value.call_args.args
		self.assertEqual(group, f'user_{self.passenger.id}')
		self.assertEqual(event['type'], 'notification')
		self.assertEqual(event['message'], 'hello')


class NewRequestNotificationTests(TestCase):
	def setUp(self):
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')
		self.drivers = [
			User.objects.create_user(username=f'driver{i}', password='driver1234', role='driver')
			for i in range(2)
		]
		self.request = RideRequest.objects.create(
			passenger=self.passenger,
			pickup_latitude=Decimal('28.613900'),
			pickup_longitude=Decimal('77.209000'),
			pickup_address='Connaught Place',
			dropoff_latitude=Decimal('28.612900'),
			dropoff_longitude=Decimal('77.229500'),
			dropoff_address='India Gate',
			compensation=Decimal('4.50'),
		)

	def test_every_driver_is_told_once(self):
		self.assertEqual(publish_new_request_notifications(), 1)
		self.assertEqual(publish_new_request_notifications(), 0)

		notifications = Notification.objects.all()
		self.assertEqual(
			sorted(n.account_id for n in notifications),
			sorted(d.id for d in self.drivers)
		)
		self.assertTrue(all(n.payload['notification'] == EVENT_REQUEST_CREATED for n in notifications))

		self.request.refresh_from_db()
		self.assertTrue(self.request.notifications_created)


class ConsumerTests(SimpleTestCase):
	def make_communicator(self, consumer, path, user):
		communicator = WebsocketCommunicator(consumer.as_asgi(), path)
		communicator.scope['user'] = user
		return communicator

	async def test_notification_is_delivered_to_user_group(self):
		user = SimpleNamespace(id=7, role='passenger', is_anonymous=False)
		communicator = self.make_communicator(NotificationConsumer, '/ws/notifications/', user)

		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		self.assertEqual((await communicator.receive_json_from())['type'], 'connection_established')

		await get_channel_layer().group_send('user_7', {
			'type': 'notification',
			'notification_id': 1,
			'notification_type': 'ride_updates',
			'message': 'hello',
			'payload': None,
			'created_at': '2024-01-01T00:00:00+00:00',
		})
		message = await communicator.receive_json_from()
		self.assertEqual(message['type'], 'ride_updates')
		self.assertEqual(message['message'], 'hello')

		await communicator.send_json_to({'type': 'ping'})
		self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})
		await communicator.disconnect()

	@patch('realtime.consumers.driver_consumer._store_driver_location', new_callable=AsyncMock)
	async def test_driver_location_update_is_stored(self, mock_store):
		user = SimpleNamespace(id=3, role='driver', is_anonymous=False)
		communicator = self.make_communicator(DriverConsumer, '/ws/driver/', user)

		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		await communicator.receive_json_from()

		await communicator.send_json_to({'type': 'driver_location_update', 'latitude': 28.6, 'longitude': 77.2})
		message = await communicator.receive_json_from()

		self.assertEqual(message['type'], 'location_updated')
		mock_store.assert_awaited_once_with(3, 28.6, 77.2)

		await communicator.send_json_to({'type': 'driver_location_update', 'latitude': 128.6, 'longitude': 77.2})
		self.assertEqual((await communicator.receive_json_from())['type'], 'error')
		await communicator.disconnect()
