# Xpressbees status_code / status -> canonical status
status_mapping = {
    "DRC": {"status": "booked", "sub_status": "booked"},
    "PP": {"status": "pickup_scheduled", "sub_status": "pending pickup"},
    "OFP": {"status": "pickup_scheduled", "sub_status": "out for pickup"},
    "PUD": {"status": "in_transit", "sub_status": "pickup completed"},
    "PKD": {"status": "in_transit", "sub_status": "pickup completed"},
    "IT": {"status": "in_transit", "sub_status": "in transit"},
    "RAD": {"status": "in_transit", "sub_status": "reached destination hub"},
    "OFD": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "DLVD": {"status": "delivered", "sub_status": "delivered"},
    "DL": {"status": "delivered", "sub_status": "delivered"},
    "UD": {"status": "ndr", "sub_status": "undelivered"},
    "NDR": {"status": "ndr", "sub_status": "undelivered"},
    "RTO": {"status": "rto", "sub_status": "RTO initiated"},
    "RTO-IT": {"status": "rto", "sub_status": "RTO in transit"},
    "RTD": {"status": "rto", "sub_status": "RTO delivered"},
    "CN": {"status": "cancelled", "sub_status": "cancelled"},
    "CANCELLED": {"status": "cancelled", "sub_status": "cancelled"},
    "pending pickup": {"status": "pickup_scheduled", "sub_status": "pending pickup"},
    "in transit": {"status": "in_transit", "sub_status": "in transit"},
    "out for delivery": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "delivered": {"status": "delivered", "sub_status": "delivered"},
    "exception": {"status": "ndr", "sub_status": "undelivered"},
    "rto": {"status": "rto", "sub_status": "RTO in transit"},
}

# tracking_data groups events under these keys
EVENT_CATEGORIES = (
    "pending pickup",
    "in transit",
    "out for delivery",
    "exception",
    "rto",
    "delivered",
)
