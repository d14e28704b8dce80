from .rate_card import Rate_Card
from .seller_rate_override import Seller_Rate_Override
from .shipping_partner import Shipping_Partner
