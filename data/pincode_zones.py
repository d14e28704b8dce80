"""
Pincode facts used by the zone classifier.

Indian pincodes are six digits: the first two identify the postal circle
(roughly a state), the first three the sorting district. The tables below are
deliberately coarse; they are not a geocoder.
"""

# 2 digit postal circle -> state
STATE_BY_CIRCLE = {
    "11": "Delhi",
    "12": "Haryana",
    "13": "Haryana",
    "14": "Punjab",
    "15": "Punjab",
    "16": "Punjab",
    "17": "Himachal Pradesh",
    "18": "Jammu & Kashmir",
    "19": "Jammu & Kashmir",
    "20": "Uttar Pradesh",
    "21": "Uttar Pradesh",
    "22": "Uttar Pradesh",
    "23": "Uttar Pradesh",
    "24": "Uttar Pradesh",
    "25": "Uttar Pradesh",
    "26": "Uttar Pradesh",
    "27": "Uttar Pradesh",
    "28": "Uttar Pradesh",
    "30": "Rajasthan",
    "31": "Rajasthan",
    "32": "Rajasthan",
    "33": "Rajasthan",
    "34": "Rajasthan",
    "36": "Gujarat",
    "37": "Gujarat",
    "38": "Gujarat",
    "39": "Gujarat",
    "40": "Maharashtra",
    "41": "Maharashtra",
    "42": "Maharashtra",
    "43": "Maharashtra",
    "44": "Maharashtra",
    "45": "Madhya Pradesh",
    "46": "Madhya Pradesh",
    "47": "Madhya Pradesh",
    "48": "Madhya Pradesh",
    "49": "Chhattisgarh",
    "50": "Telangana",
    "51": "Andhra Pradesh",
    "52": "Andhra Pradesh",
    "53": "Andhra Pradesh",
    "56": "Karnataka",
    "57": "Karnataka",
    "58": "Karnataka",
    "59": "Karnataka",
    "60": "Tamil Nadu",
    "61": "Tamil Nadu",
    "62": "Tamil Nadu",
    "63": "Tamil Nadu",
    "64": "Tamil Nadu",
    "67": "Kerala",
    "68": "Kerala",
    "69": "Kerala",
    "70": "West Bengal",
    "71": "West Bengal",
    "72": "West Bengal",
    "73": "West Bengal",
    "74": "West Bengal",
    "75": "Odisha",
    "76": "Odisha",
    "77": "Odisha",
    "78": "Assam",
    "79": "North East",
    "80": "Bihar",
    "81": "Bihar",
    "82": "Jharkhand",
    "83": "Jharkhand",
    "84": "Bihar",
    "85": "Bihar",
    "90": "Army Postal Service",
    "91": "Army Postal Service",
    "92": "Army Postal Service",
    "93": "Army Postal Service",
    "94": "Army Postal Service",
    "95": "Army Postal Service",
    "96": "Army Postal Service",
    "97": "Army Postal Service",
    "98": "Army Postal Service",
    "99": "Army Postal Service",
}

# 3 digit sorting districts that belong to a different state than their circle
STATE_BY_DISTRICT = {
    "160": "Chandigarh",
    "194": "Ladakh",
    "246": "Uttarakhand",
    "247": "Uttarakhand",
    "248": "Uttarakhand",
    "249": "Uttarakhand",
    "262": "Uttarakhand",
    "263": "Uttarakhand",
    "396": "Dadra and Nagar Haveli and Daman and Diu",
    "403": "Goa",
    "605": "Puducherry",
    "737": "Sikkim",
    "744": "Andaman and Nicobar Islands",
    "790": "Arunachal Pradesh",
    "791": "Arunachal Pradesh",
    "792": "Arunachal Pradesh",
    "793": "Meghalaya",
    "794": "Meghalaya",
    "795": "Manipur",
    "796": "Mizoram",
    "797": "Nagaland",
    "798": "Nagaland",
    "799": "Tripura",
    "814": "Jharkhand",
    "815": "Jharkhand",
    "816": "Jharkhand",
}

REGION_BY_STATE = {
    # North
    "Delhi": "North",
    "Haryana": "North",
    "Punjab": "North",
    "Chandigarh": "North",
    "Himachal Pradesh": "North",
    "Jammu & Kashmir": "North",
    "Ladakh": "North",
    "Uttar Pradesh": "North",
    "Uttarakhand": "North",
    # West
    "Rajasthan": "West",
    "Gujarat": "West",
    "Maharashtra": "West",
    "Goa": "West",
    "Dadra and Nagar Haveli and Daman and Diu": "West",
    # Central
    "Madhya Pradesh": "Central",
    "Chhattisgarh": "Central",
    # South
    "Telangana": "South",
    "Andhra Pradesh": "South",
    "Karnataka": "South",
    "Tamil Nadu": "South",
    "Puducherry": "South",
    "Kerala": "South",
    # East
    "West Bengal": "East",
    "Odisha": "East",
    "Bihar": "East",
    "Jharkhand": "East",
    "Sikkim": "East",
    # North East
    "Assam": "Northeast",
    "North East": "Northeast",
    "Arunachal Pradesh": "Northeast",
    "Meghalaya": "Northeast",
    "Manipur": "Northeast",
    "Mizoram": "Northeast",
    "Nagaland": "Northeast",
    "Tripura": "Northeast",
    # Islands
    "Andaman and Nicobar Islands": "Islands",
}

# 3 digit sorting district -> metro city
METRO_BY_DISTRICT = {
    "110": "Delhi",
    "400": "Mumbai",
    "401": "Mumbai",
    "411": "Pune",
    "380": "Ahmedabad",
    "500": "Hyderabad",
    "560": "Bengaluru",
    "600": "Chennai",
    "700": "Kolkata",
}

# prefixes of North-East, J&K, Ladakh, hill states and islands
SPECIAL_PREFIXES = (
    "78",
    "79",
    "17",
    "18",
    "19",
    "737",
    "744",
    "68255",  # Lakshadweep
)
