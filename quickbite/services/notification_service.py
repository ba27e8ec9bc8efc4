import logging
from typing import Optional

from telegram import Bot
from telegram.error import TelegramError

from ..exceptions import UpstreamError
from ..models import Order, PaymentMethod
from ..utils.messages import Messages


class NotificationService:
    """Tells restaurants about new orders through their Telegram chat"""

    def __init__(self, bot: Optional[Bot], restaurants, logger: Optional[logging.Logger] = None):
        self.bot = bot
        self.restaurants = restaurants
        self.logger = logger or logging.getLogger(__name__)

    async def notify_new_order(self, order: Order, restaurant_id: int,
                               payment_method: PaymentMethod) -> bool:
        if self.bot is None:
            self.logger.warning(
                f"Restaurant notifications disabled; order {order.order_number} not announced"
            )
            return False

        restaurant = await self.restaurants.get_by_id(restaurant_id)
        if restaurant is None or not restaurant.telegram_chat_id:
            self.logger.warning(
                f"Restaurant {restaurant_id} has no notification chat; "
                f"order {order.order_number} not announced"
            )
            return False

        try:
            await self.bot.send_message(
                chat_id=restaurant.telegram_chat_id,
                text=Messages.new_order(order, payment_method)
            )
        except TelegramError as e:
            raise UpstreamError(f"Failed to notify restaurant {restaurant_id}: {e}") from e

        self.logger.info(f"Restaurant {restaurant_id} notified about order {order.order_number}")
        return True
