"""Notification service for appointment push notifications via FCM."""

import asyncio
from enum import Enum
from uuid import UUID

import structlog
from firebase_admin import messaging

from scheduling.schemas.appointments import AppointmentResponse

logger = structlog.get_logger(__name__)


class AppointmentEvent(str, Enum):
    """Lifecycle events participants are told about."""

    BOOKED = "booked"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"


_EVENT_TITLES = {
    AppointmentEvent.BOOKED: "Appointment booked",
    AppointmentEvent.RESCHEDULED: "Appointment rescheduled",
    AppointmentEvent.CANCELLED: "Appointment cancelled",
}


class NotificationService:
    """Publishes appointment events to each participant's FCM topic."""

    def __init__(self, enabled: bool = True):
        """Initialize service; a disabled service drops every event."""
        self.enabled = enabled

    @staticmethod
    def user_topic(user_id: str | UUID) -> str:
        """FCM topic the user's devices subscribe to."""
        return f"user_{user_id}"

    @staticmethod
    async def send_push_notification(
        topic: str,
        title: str,
        body: str,
        data: dict[str, str] | None = None,
    ) -> bool:
        """
        Send a push notification to every device subscribed to a topic.

        Args:
            topic: FCM topic name
            title: Notification title
            body: Notification body
            data: Optional data payload

        Returns:
            True if FCM accepted the message
        """
        try:
            message = messaging.Message(
                notification=messaging.Notification(
                    title=title,
                    body=body,
                ),
                data=data or {},
                topic=topic,
                apns=messaging.APNSConfig(
                    payload=messaging.APNSPayload(
                        aps=messaging.Aps(
                            sound="default",
                            badge=1,
                        ),
                    ),
                ),
                android=messaging.AndroidConfig(
                    priority="high",
                    notification=messaging.AndroidNotification(
                        sound="default",
                        priority="high",
                    ),
                ),
            )

            # FCM sends are blocking HTTP calls; keep them off the event loop
            message_id = await asyncio.to_thread(messaging.send, message)

            logger.info("push_notification_sent", title=title, topic=topic, message_id=message_id)
            return True

        except Exception as e:
            logger.error("push_notification_failed", error=str(e), title=title, topic=topic)
            return False

    async def send_appointment_event(
        self,
        event: AppointmentEvent,
        appointment: AppointmentResponse,
    ) -> int:
        """
        Tell the patient and the doctor about an appointment change.

        Args:
            event: What happened to the appointment
            appointment: Appointment after the change

        Returns:
            Number of participants notified
        """
        if not self.enabled:
            return 0

        when = f"{appointment.date.isoformat()} {appointment.start_time.strftime('%H:%M')}"
        body = (
            f"Your {appointment.type.value} appointment on {when} has been cancelled"
            if event == AppointmentEvent.CANCELLED
            else f"Your {appointment.type.value} appointment is on {when}"
        )
        data = {
            "type": f"appointment_{event.value}",
            "appointment_id": str(appointment.id),
            "date": appointment.date.isoformat(),
            "start_time": appointment.start_time.strftime("%H:%M"),
            "end_time": appointment.end_time.strftime("%H:%M"),
            "status": appointment.status.value,
        }

        sent = 0
        for user_id in (appointment.patient_id, appointment.doctor_id):
            if await self.send_push_notification(
                topic=self.user_topic(user_id),
                title=_EVENT_TITLES[event],
                body=body,
                data=data,
            ):
                sent += 1

        return sent
