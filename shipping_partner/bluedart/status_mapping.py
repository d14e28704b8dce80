# BlueDart StatusType / Status -> canonical status
status_mapping = {
    "PU": {"status": "in_transit", "sub_status": "pickup completed"},
    "IT": {"status": "in_transit", "sub_status": "in transit"},
    "OD": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "UD": {"status": "ndr", "sub_status": "undelivered"},
    "DL": {"status": "delivered", "sub_status": "delivered"},
    "RT": {"status": "rto", "sub_status": "RTO in transit"},
    "RD": {"status": "rto", "sub_status": "RTO delivered"},
    "CA": {"status": "cancelled", "sub_status": "cancelled"},
    "SHIPMENT BOOKED": {"status": "booked", "sub_status": "booked"},
    "PICKUP REGISTERED": {"status": "pickup_scheduled", "sub_status": "pickup scheduled"},
    "SHIPMENT PICKED UP": {"status": "in_transit", "sub_status": "pickup completed"},
    "SHIPMENT OUTSCANNED TO NETWORK": {"status": "in_transit", "sub_status": "in transit"},
    "SHIPMENT ARRIVED": {"status": "in_transit", "sub_status": "in transit"},
    "SHIPMENT OUT FOR DELIVERY": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "SHIPMENT DELIVERED": {"status": "delivered", "sub_status": "delivered"},
    "RETURNED TO ORIGIN": {"status": "rto", "sub_status": "RTO delivered"},
}

# StatusType used by BlueDart when the waybill is unknown
NOT_FOUND_STATUS_TYPE = "NF"
