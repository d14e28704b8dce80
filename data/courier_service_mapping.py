# services
from shipping_partner.delhivery.delhivery import Delhivery
from shipping_partner.bluedart.bluedart import Bluedart
from shipping_partner.dtdc.dtdc import Dtdc
from shipping_partner.ecomexpress.ecomexpress import Ecomexpress
from shipping_partner.ekart.ekart import Ekart
from shipping_partner.xpressbees.xpressbees import Xpressbees

# courier code -> adapter class, a new courier is one adapter plus one entry
courier_service_mapping = {
    "delhivery": Delhivery,
    "bluedart": Bluedart,
    "dtdc": Dtdc,
    "ecomexpress": Ecomexpress,
    "ekart": Ekart,
    "xpressbees": Xpressbees,
}

# legacy and display spellings seen in stored data and requests
courier_code_aliases = {
    "delivery service": "delhivery",
    "delhivery surface": "delhivery",
    "blue dart": "bluedart",
    "ecom express": "ecomexpress",
    "ecom-express": "ecomexpress",
    "ecom_express": "ecomexpress",
    "ekart logistics": "ekart",
    "xpress bees": "xpressbees",
}
