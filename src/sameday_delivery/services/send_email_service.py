from loguru import logger

from sameday_delivery.core.constants import CONFIRMATION_SUBJECT
from sameday_delivery.schemas.reservation import OrderDeliveryMeta
from sameday_delivery.services.notification import send_notification_task
from sameday_delivery.services.order_display import render_email_meta


class NotificationService:
    """Сервис для уведомлений покупателя о доставке."""

    @staticmethod
    def send_delivery_confirmation(
        meta: OrderDeliveryMeta,
        email: str,
    ) -> None:
        """Ставит в очередь письмо с окном доставки заказа."""
        try:
            body = render_email_meta(
                meta.model_dump(by_alias=True, mode='json'),
                plain_text=True,
            )
            if not body:
                logger.warning(
                    f'У заказа {meta.order_id} нет окна доставки для письма',
                )
                return
            text = f"""
Thank you for your order #{meta.order_id}!
{body}
Delivery ZIP: {meta.zip_code}
"""
            send_notification_task(
                emails=[email],
                text=text,
                subject=CONFIRMATION_SUBJECT,
            )
            logger.info(
                f'Письмо об окне доставки заказа {meta.order_id} '
                'поставлено в очередь',
            )
        except Exception as e:
            logger.error(
                f'Ошибка отправки письма по заказу {meta.order_id}: {str(e)}',
            )
            raise
