# Ekart track status -> canonical status
status_mapping = {
    "Order Placed": {"status": "booked", "sub_status": "booked"},
    "Shipment Created": {"status": "booked", "sub_status": "booked"},
    "Pickup Scheduled": {"status": "pickup_scheduled", "sub_status": "pickup scheduled"},
    "Out For Pickup": {"status": "pickup_scheduled", "sub_status": "out for pickup"},
    "Picked Up": {"status": "in_transit", "sub_status": "pickup completed"},
    "Shipment Picked Up": {"status": "in_transit", "sub_status": "pickup completed"},
    "In Transit": {"status": "in_transit", "sub_status": "in transit"},
    "Reached Destination Hub": {"status": "in_transit", "sub_status": "reached destination hub"},
    "Out For Delivery": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "Delivered": {"status": "delivered", "sub_status": "delivered"},
    "Undelivered": {"status": "ndr", "sub_status": "undelivered"},
    "Delivery Attempted": {"status": "ndr", "sub_status": "delivery attempted"},
    "RTO Initiated": {"status": "rto", "sub_status": "RTO initiated"},
    "RTO In Transit": {"status": "rto", "sub_status": "RTO in transit"},
    "RTO Delivered": {"status": "rto", "sub_status": "RTO delivered"},
    "Cancelled": {"status": "cancelled", "sub_status": "cancelled"},
    "Shipment Cancelled": {"status": "cancelled", "sub_status": "cancelled"},
}
