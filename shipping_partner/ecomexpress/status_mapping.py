# Ecom Express reason_code_number / status text -> canonical status
status_mapping = {
    "1230": {"status": "booked", "sub_status": "booked"},
    "0011": {"status": "pickup_scheduled", "sub_status": "pickup scheduled"},
    "1210": {"status": "pickup_scheduled", "sub_status": "pickup scheduled"},
    "001": {"status": "in_transit", "sub_status": "pickup completed"},
    "0001": {"status": "in_transit", "sub_status": "pickup completed"},
    "002": {"status": "in_transit", "sub_status": "in transit"},
    "003": {"status": "in_transit", "sub_status": "in transit"},
    "004": {"status": "in_transit", "sub_status": "in transit"},
    "005": {"status": "in_transit", "sub_status": "reached destination hub"},
    "006": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "999": {"status": "delivered", "sub_status": "delivered"},
    "204": {"status": "delivered", "sub_status": "delivered"},
    "207": {"status": "ndr", "sub_status": "customer not available"},
    "209": {"status": "ndr", "sub_status": "customer refused"},
    "210": {"status": "ndr", "sub_status": "address incomplete"},
    "218": {"status": "ndr", "sub_status": "customer not reachable"},
    "219": {"status": "ndr", "sub_status": "delivery rescheduled"},
    "777": {"status": "rto", "sub_status": "RTO initiated"},
    "77": {"status": "rto", "sub_status": "RTO in transit"},
    "888": {"status": "rto", "sub_status": "RTO delivered"},
    "000": {"status": "cancelled", "sub_status": "cancelled"},
    "Soft data uploaded": {"status": "booked", "sub_status": "booked"},
    "Shipment picked up": {"status": "in_transit", "sub_status": "pickup completed"},
    "In transit": {"status": "in_transit", "sub_status": "in transit"},
    "Out for delivery": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "Delivered": {"status": "delivered", "sub_status": "delivered"},
    "Undelivered": {"status": "ndr", "sub_status": "undelivered"},
    "Returned": {"status": "rto", "sub_status": "RTO delivered"},
    "Shipment Cancelled": {"status": "cancelled", "sub_status": "cancelled"},
}
