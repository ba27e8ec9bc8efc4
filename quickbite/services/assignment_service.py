import logging
from typing import Optional, Tuple, Union

from ..exceptions import EligibilityError, NotFoundError, ValidationError
from ..models import Restaurant, Zone
from .geofence import find_containing_zone


class AssignmentService:
    """Resolves the restaurant an order goes to and checks it may receive it"""

    def __init__(self, restaurants, zones, logger: Optional[logging.Logger] = None):
        self.restaurants = restaurants
        self.zones = zones
        self.logger = logger or logging.getLogger(__name__)

    async def find_restaurant(self, identifier: Union[int, str, None]) -> Optional[Restaurant]:
        """Internal id, then external business id, then slug"""
        if identifier is None or str(identifier).strip() in ("", "unknown"):
            return None
        ref = str(identifier).strip()

        restaurant = None
        if ref.isdigit():
            restaurant = await self.restaurants.get_by_id(int(ref))
        if restaurant is None:
            restaurant = await self.restaurants.get_by_business_id(ref)
        if restaurant is None:
            restaurant = await self.restaurants.get_by_slug(ref)
        return restaurant

    async def assign(self, identifier: Union[int, str, None], user_zone_id: Union[int, str, None] = None,
                     restaurant_name: Optional[str] = None) -> Tuple[Restaurant, Zone]:
        if identifier is None or str(identifier).strip() in ("", "unknown"):
            raise ValidationError("Restaurant ID is required. Please select a restaurant.")

        restaurant = await self.find_restaurant(identifier)
        if restaurant is None:
            self.logger.error(f"Restaurant not found: {identifier!r}")
            raise NotFoundError("Restaurant not found")

        if restaurant_name and restaurant.name != restaurant_name:
            self.logger.warning(
                f"Restaurant name mismatch for {identifier!r}: "
                f"cart says {restaurant_name!r}, found {restaurant.name!r}"
            )

        # not accepting orders is fine: the restaurant accepts or rejects manually
        if not restaurant.is_active:
            self.logger.warning(f"Restaurant {restaurant.id} is inactive")
            raise EligibilityError("Restaurant is currently inactive")

        if restaurant.location is None:
            self.logger.error(f"Restaurant {restaurant.id} has no location")
            raise ValidationError("Restaurant location is not set. Please contact support.")

        zones = await self.zones.list_active()
        zone = find_containing_zone(restaurant.location, zones)
        if zone is None:
            self.logger.warning(
                f"Restaurant {restaurant.id} at ({restaurant.location.latitude}, "
                f"{restaurant.location.longitude}) is outside every active zone"
            )
            raise EligibilityError(
                "This restaurant is not available in your area. "
                "Only restaurants within active delivery zones can receive orders."
            )

        if user_zone_id is not None and str(user_zone_id).strip() != "":
            if str(zone.id) != str(user_zone_id).strip():
                self.logger.warning(
                    f"Zone mismatch: user zone {user_zone_id}, restaurant {restaurant.id} zone {zone.id}"
                )
                raise EligibilityError(
                    "This restaurant is not available in your zone. "
                    "Please select a restaurant from your current delivery zone."
                )
        else:
            self.logger.warning("User zoneId not provided in order request - zone validation skipped")

        self.logger.info(f"Restaurant {restaurant.id} ({restaurant.name}) assigned in zone {zone.id}")
        return restaurant, zone
