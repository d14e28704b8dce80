# Delhivery Status.Status -> canonical status
status_mapping = {
    "Manifested": {"status": "booked", "sub_status": "booked"},
    "Open": {"status": "booked", "sub_status": "booked"},
    "Not Picked": {"status": "pickup_scheduled", "sub_status": "pickup pending"},
    "Scheduled": {"status": "pickup_scheduled", "sub_status": "pickup scheduled"},
    "Picked Up": {"status": "in_transit", "sub_status": "pickup completed"},
    "In Transit": {"status": "in_transit", "sub_status": "in transit"},
    "Pending": {"status": "in_transit", "sub_status": "reached destination hub"},
    "Dispatched": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "Delivered": {"status": "delivered", "sub_status": "delivered"},
    "Undelivered": {"status": "ndr", "sub_status": "delivery attempted"},
    "RTO": {"status": "rto", "sub_status": "RTO in transit"},
    "Returned": {"status": "rto", "sub_status": "RTO delivered"},
    "RTO Delivered": {"status": "rto", "sub_status": "RTO delivered"},
    "Canceled": {"status": "cancelled", "sub_status": "cancelled"},
    "Cancelled": {"status": "cancelled", "sub_status": "cancelled"},
    "Lost": {"status": "ndr", "sub_status": "lost"},
}

# StatusType RT means the parcel is on its way back, whatever the text says
RETURN_STATUS_TYPES = ("RT", "DL-RT")
