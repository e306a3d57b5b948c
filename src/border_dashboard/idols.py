from __future__ import annotations

from dataclasses import dataclass

FALLBACK_IDOL_COLOR = "#8884d8"


@dataclass(frozen=True)
class IdolInfo:
    id: int
    name: str
    short_name: str
    color: str


_IDOL_ROWS: tuple[tuple[int, str, str, str], ...] = (
    (1, "天海春香", "har", "#e22b30"),
    (2, "如月千早", "chi", "#2743d2"),
    (3, "星井美希", "mik", "#b4e04b"),
    (4, "萩原雪歩", "yuk", "#d3dde9"),
    (5, "高槻やよい", "yay", "#f39939"),
    (6, "菊地真", "mak", "#515558"),
    (7, "水瀬伊織", "ior", "#fd99e1"),
    (8, "四条貴音", "tak", "#a6126a"),
    (9, "秋月律子", "rit", "#01a860"),
    (10, "三浦あずさ", "azu", "#9238be"),
    (11, "双海亜美", "ami", "#ffe43f"),
    (12, "双海真美", "mam", "#ffe43f"),
    (13, "我那覇響", "hib", "#01adb9"),
    (14, "春日未来", "mir", "#ea5b76"),
    (15, "最上静香", "siz", "#6495cf"),
    (16, "伊吹翼", "tsu", "#fed552"),
    (17, "田中琴葉", "kth", "#92cfbb"),
    (18, "島原エレナ", "ele", "#9bce92"),
    (19, "佐竹美奈子", "min", "#58a6dc"),
    (20, "所恵美", "meg", "#454341"),
    (21, "徳川まつり", "mat", "#5abfb7"),
    (22, "箱崎星梨花", "ser", "#ed90ba"),
    (23, "野々原茜", "aka", "#eb613f"),
    (24, "望月杏奈", "ann", "#7e6ca8"),
    (25, "ロコ", "roc", "#fff03c"),
    (26, "七尾百合子", "yur", "#c7b83c"),
    (27, "高山紗代子", "say", "#7f6575"),
    (28, "松田亜利沙", "ari", "#b54461"),
    (29, "高坂海美", "umi", "#e9739b"),
    (30, "中谷育", "iku", "#f7e78e"),
    (31, "天空橋朋花", "tom", "#bee3e3"),
    (32, "エミリースチュアート", "emi", "#554171"),
    (33, "北沢志保", "sih", "#afa690"),
    (34, "舞浜歩", "ayu", "#e25a9b"),
    (35, "木下ひなた", "hin", "#d1342c"),
    (36, "矢吹可奈", "kan", "#f5ad3b"),
    (37, "横山奈緒", "nao", "#5abfb7"),
    (38, "二階堂千鶴", "chz", "#f19557"),
    (39, "馬場このみ", "kon", "#f1becb"),
    (40, "大神環", "tam", "#ee762e"),
    (41, "豊川風花", "fuk", "#7278a8"),
    (42, "宮尾美也", "miy", "#d7a96b"),
    (43, "福田のり子", "nor", "#eceb70"),
    (44, "真壁瑞希", "miz", "#99b7dc"),
    (45, "篠宮可憐", "kar", "#b63b40"),
    (46, "百瀬莉緒", "rio", "#f19591"),
    (47, "永吉昴", "sub", "#aeb49c"),
    (48, "北上麗花", "rei", "#6bb6b0"),
    (49, "周防桃子", "mom", "#efb864"),
    (50, "ジュリア", "jul", "#d7385f"),
    (51, "白石紬", "tmg", "#ebe1ff"),
    (52, "桜守歌織", "kao", "#274079"),
)

IDOL_CATALOG: dict[int, IdolInfo] = {
    idol_id: IdolInfo(id=idol_id, name=name, short_name=short_name, color=color)
    for idol_id, name, short_name, color in _IDOL_ROWS
}
SUBJECT_IDS: tuple[int, ...] = tuple(sorted(IDOL_CATALOG))


def get_idol(idol_id: int) -> IdolInfo | None:
    return IDOL_CATALOG.get(int(idol_id))


def idol_name(idol_id: int) -> str:
    info = get_idol(idol_id)
    return info.name if info else f"アイドル {idol_id}"


def idol_color(idol_id: int) -> str:
    info = get_idol(idol_id)
    return info.color if info else FALLBACK_IDOL_COLOR

