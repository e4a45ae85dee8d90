# luxemoon/utils/nepal.py
from typing import Dict, List

# Province -> district mapping (all 77 districts)
NEPAL_PROVINCES: Dict[str, List[str]] = {
    "Koshi Province": [
        "Bhojpur", "Dhankuta", "Ilam", "Jhapa", "Khotang",
        "Morang", "Okhaldhunga", "Panchthar", "Sankhuwasabha",
        "Solukhumbu", "Sunsari", "Taplejung", "Terhathum", "Udayapur"
    ],
    "Madhesh Province": [
        "Bara", "Dhanusha", "Mahottari", "Parsa",
        "Rautahat", "Saptari", "Sarlahi", "Siraha"
    ],
    "Bagmati Province": [
        "Bhaktapur", "Chitwan", "Dhading", "Dolakha",
        "Kathmandu", "Kavrepalanchok", "Lalitpur", "Makwanpur",
        "Nuwakot", "Ramechhap", "Rasuwa", "Sindhuli", "Sindhupalchok"
    ],
    "Gandaki Province": [
        "Baglung", "Gorkha", "Kaski", "Lamjung",
        "Manang", "Mustang", "Myagdi", "Nawalparasi East",
        "Parbat", "Syangja", "Tanahun"
    ],
    "Lumbini Province": [
        "Arghakhanchi", "Banke", "Bardiya", "Dang",
        "Gulmi", "Kapilvastu", "Nawalparasi West", "Palpa",
        "Pyuthan", "Rolpa", "Rukum East", "Rupandehi"
    ],
    "Karnali Province": [
        "Dailekh", "Dolpa", "Humla", "Jajarkot", "Jumla",
        "Kalikot", "Mugu", "Rukum West", "Salyan", "Surkhet"
    ],
    "Sudurpashchim Province": [
        "Achham", "Baitadi", "Bajhang", "Bajura",
        "Dadeldhura", "Darchula", "Doti", "Kailali", "Kanchanpur"
    ]
}

def is_valid_province_district(province: str, district: str) -> bool:
    return district in NEPAL_PROVINCES.get(province, [])