"""Random flavour text for Discord presence statuses."""

import random
from typing import Dict, List, Optional

STATUS_ONLINE = [
    "Terhubung",
    "Berselancar di Internet",
    "Online",
    "Aktif",
    "Masih Hidup",
    "Belum mati",
    "Belum ke-isekai",
    "Masih di Bumi",
    "Ada koneksi Internet",
    "Dar(l)ing",
    "Daring",
    "Bersama keluarga besar (Internet)",
    "Ngobrol",
    "Nge-meme bareng",
]

STATUS_IDLE = [
    "Halo kau di sana?",
    "Ketiduran",
    "Nyawa di pertanyakan",
    "Halo????",
    "Riajuu mungkin",
    "Idle",
    "Gak aktif",
    "Jauh dari keyboard",
    "Lagi baper bentar",
    "Nonton Anime",
    "Lupa matiin data",
    "Lupa disconnect wifi",
    "Bengong",
]

STATUS_DND = [
    "Lagi riajuu bentar",
    "Pacaran (joudan desu)",
    "Mungkin tidur",
    "Memantau keadaan",
    "Jadi satpam",
    "Mata-mata jadinya sibuk",
    "Bos besar supersibuk",
    "Ogah di-spam",
    "Nonton Anime",
    "Nonton Dorama",
    "Sok sibuk",
    "Gangguin Mantan",
    "Ngestalk Seseorang",
    "Nge-roll gacha",
    "Do not disturb",
    "Jangan ganggu",
    "Rapat DPR",
    "Sedang merencanakan UU baru",
]

STATUS_OFFLINE = [
    "Mokad",
    "Off",
    "Tidak online",
    "Bosen hidup",
    "Dah di Isekai",
    "zzz",
    "Pura-pura off",
    "Invisible deng",
    "Memantau dari kejauhan",
    "Lagi comfy camping",
    "Riajuu selamanya",
    "Gak punya koneksi",
    "Gak ada sinyal",
    "Kuota habis",
]

STATUS_TEXTS: Dict[str, List[str]] = {
    "online": STATUS_ONLINE,
    "idle": STATUS_IDLE,
    "dnd": STATUS_DND,
    "offline": STATUS_OFFLINE,
}

# CSS class names used by the user card template
STATUS_CLASSES = {"online": "online", "idle": "idle", "dnd": "dnd", "offline": "off"}

UNKNOWN_STATUS_TEXT = "Tidak diketahui"


def select_random_status(status: str, rng: Optional[random.Random] = None) -> Optional[str]:
    """Pick a flavour text for ``status``, None for unknown statuses."""
    choices = STATUS_TEXTS.get(status.lower())
    if not choices:
        return None
    return (rng or random).choice(choices)
