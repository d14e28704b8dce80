# DTDC strCode / strStatus -> canonical status
status_mapping = {
    "BKD": {"status": "booked", "sub_status": "booked"},
    "Booked": {"status": "booked", "sub_status": "booked"},
    "SOFTDATA UPLOAD": {"status": "booked", "sub_status": "booked"},
    "PCSC": {"status": "pickup_scheduled", "sub_status": "pickup scheduled"},
    "PCAW": {"status": "pickup_scheduled", "sub_status": "pickup scheduled"},
    "PCUP": {"status": "in_transit", "sub_status": "pickup completed"},
    "Picked Up": {"status": "in_transit", "sub_status": "pickup completed"},
    "OBMD": {"status": "in_transit", "sub_status": "in transit"},
    "OBMN": {"status": "in_transit", "sub_status": "in transit"},
    "CDOUT": {"status": "in_transit", "sub_status": "in transit"},
    "CDIN": {"status": "in_transit", "sub_status": "in transit"},
    "IBMD": {"status": "in_transit", "sub_status": "reached destination hub"},
    "IBMN": {"status": "in_transit", "sub_status": "reached destination hub"},
    "In Transit": {"status": "in_transit", "sub_status": "in transit"},
    "OUTDLV": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "Out For Delivery": {"status": "out_for_delivery", "sub_status": "out for delivery"},
    "DLV": {"status": "delivered", "sub_status": "delivered"},
    "Delivered": {"status": "delivered", "sub_status": "delivered"},
    "NONDLV": {"status": "ndr", "sub_status": "delivery attempted"},
    "Not Delivered": {"status": "ndr", "sub_status": "delivery attempted"},
    "RTO": {"status": "rto", "sub_status": "RTO initiated"},
    "RTOOUTDLV": {"status": "rto", "sub_status": "RTO out for delivery"},
    "RTODLV": {"status": "rto", "sub_status": "RTO delivered"},
    "RTO Delivered": {"status": "rto", "sub_status": "RTO delivered"},
    "CAN": {"status": "cancelled", "sub_status": "cancelled"},
    "Cancelled": {"status": "cancelled", "sub_status": "cancelled"},
}
