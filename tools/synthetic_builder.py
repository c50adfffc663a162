"""Helpers for building each workbook of the synthetic report-card exports."""

from __future__ import annotations

import random

import pandas as pd

from tools.synthetic_templates import (
    DEMOGRAPHIC_SPLITS,
    DISTRICT_TEMPLATES,
    QUALIFICATIONS,
    SCHOOL_TEMPLATES,
    SCHOOL_YEAR,
    TELL_MEASURES,
)

SUPPRESSED = "*"


def state_sch_id(template: dict) -> str:
    return f"{template['dist']}{template['sch']}"


def school_rng(seed: int, school_id: str) -> random.Random:
    return random.Random(f"{seed}-{school_id}")


def build_profiles(seed: int) -> list[dict]:
    """One row of underlying facts per school; every workbook is cut from these."""
    profiles = []
    for template in SCHOOL_TEMPLATES:
        school_id = state_sch_id(template)
        rng = school_rng(seed, school_id)
        flags = set(template.get("flags", ()))
        membership = 0 if "zero_membership" in flags else rng.randint(220, 780)
        teachers = max(rng.randint(14, 48), 1)

        def share(low: float, high: float) -> int:
            return int(round(membership * rng.uniform(low, high)))

        profiles.append(
            {
                **template,
                "state_sch_id": school_id,
                "flags": flags,
                "membership": membership,
                "white": share(0.70, 0.97),
                "male": share(0.46, 0.54),
                "attendance_rate": round(rng.uniform(92.0, 97.5), 1),
                "chronic": share(0.05, 0.22),
                "safety": share(0.01, 0.12),
                "ell": share(0.0, 0.04),
                "frpl": share(0.35, 0.85),
                "gifted": share(0.04, 0.18),
                "homeless": share(0.0, 0.05),
                "iep": share(0.10, 0.20),
                "migrant": share(0.0, 0.02),
                "teachers": teachers,
                "students_per_teacher": rng.randint(13, 19),
                "experience": round(rng.uniform(7.0, 16.0), 1),
                "new_pct": round(rng.uniform(0.0, 0.15), 3),
                "qualifications": _qualification_split(rng),
                "national_board": rng.randint(0, max(teachers // 5, 1)),
                "turnover": rng.randint(0, max(teachers // 4, 1)),
                "waivers": rng.randint(0, 2),
                "tell": [round(rng.uniform(68.0, 97.0), 1) for _ in TELL_MEASURES],
                "prof_ma": round(rng.uniform(25.0, 65.0), 1),
                "prof_rd": round(rng.uniform(30.0, 70.0), 1),
            }
        )
    return profiles


def _qualification_split(rng: random.Random) -> list[float]:
    weights = [rng.uniform(0.0, 0.5), rng.uniform(3.0, 6.0)] + [rng.uniform(1.0, 4.0) for _ in QUALIFICATIONS[2:]]
    total = sum(weights)
    return [round(100 * weight / total, 1) for weight in weights]


def _district(dist_number: str) -> dict:
    return next(d for d in DISTRICT_TEMPLATES if d["dist_number"] == dist_number)


def _keyed(profile: dict, **values) -> dict:
    return {"SCH_YEAR": SCHOOL_YEAR, "STATE_SCH_ID": profile["state_sch_id"], **values}


def build_roster(profiles: list[dict]) -> pd.DataFrame:
    rows = []
    for index, profile in enumerate(profiles):
        district = _district(profile["dist"])
        low, high = profile["grades"]
        rows.append(
            {
                "SCH_YEAR": int(SCHOOL_YEAR),
                "CNTYNO": district["cntyno"],
                "CNTYNAME": district["name"].replace(" County", ""),
                "DIST_NUMBER": profile["dist"],
                "DIST_NAME": district["name"],
                "SCH_NUMBER": profile["sch"],
                "SCH_NAME": profile["name"],
                "SCH_CD": f"{profile['dist']}{profile['sch']}".lstrip("0"),
                "STATE_SCH_ID": profile["state_sch_id"],
                "SCH_TYPE": profile.get("sch_type", "A1"),
                "COOP": district["coop"],
                "LOW_GRADE": low,
                "HIGH_GRADE": high,
                "TITLE1_STATUS": profile["title1"],
                "LATITUDE": round(37.0 + index * 0.05, 4),
                "LONGITUDE": round(-85.3 + index * 0.04, 4),
            }
        )
    return pd.DataFrame(rows)


def build_levels(profiles: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            _keyed(profile, SCH_NAME=profile["name"], LEVEL=profile["level"])
            for profile in profiles
            if "no_level" not in profile["flags"]
        ]
    )


def build_attendance(profiles: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(
        [_keyed(profile, ATTENDANCERATE=profile["attendance_rate"]) for profile in profiles]
    )


def build_demographic_split(profiles: list[dict], split: str, header: str, key: str) -> pd.DataFrame:
    column, kept, distractor = DEMOGRAPHIC_SPLITS[split]
    rows = []
    for profile in profiles:
        value = profile[key]
        if split == "chronic" and "suppressed_chronic" in profile["flags"]:
            value = SUPPRESSED
        rows.append(_keyed(profile, **{column: kept, header: value}))
        rows.append(_keyed(profile, **{column: distractor, header: profile[key] // 2}))
    return pd.DataFrame(rows)


def build_safe_schools(profiles: list[dict]) -> pd.DataFrame:
    rows = []
    for profile in profiles:
        rows.append(_keyed(profile, TABLE="Behavior Events", CATEGORY="Total", TOTAL_STUDENTS=profile["safety"]))
        rows.append(_keyed(profile, TABLE="Behavior Events", CATEGORY="Assault", TOTAL_STUDENTS=profile["safety"] // 3))
        rows.append(_keyed(profile, TABLE="Legal Sanctions", CATEGORY="Total", TOTAL_STUDENTS=profile["safety"] // 4))
    return pd.DataFrame(rows)


def build_counts(profiles: list[dict], header: str, key: str) -> pd.DataFrame:
    return pd.DataFrame([_keyed(profile, **{header: profile[key]}) for profile in profiles])


def build_race_gender(profiles: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            _keyed(
                profile,
                MEMBERSHIP_TOTAL=profile["membership"],
                WHITE_TOTAL=profile["white"],
                MALE_TOTAL=profile["male"],
                FEMALE_TOTAL=profile["membership"] - profile["male"],
            )
            for profile in profiles
        ]
    )


def build_ratio(profiles: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(
        [_keyed(profile, STDNT_TCH_RATIO=f"{profile['students_per_teacher']}:1") for profile in profiles]
    )


def build_new_teachers(profiles: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            _keyed(
                profile,
                TEACHERS=profile["teachers"],
                NEWPCT=None if "blank_new_pct" in profile["flags"] else profile["new_pct"],
            )
            for profile in profiles
        ]
    )


def build_qualifications(profiles: list[dict]) -> pd.DataFrame:
    rows = []
    for profile in profiles:
        if "no_quals" in profile["flags"]:
            continue
        for qualification, pct in zip(QUALIFICATIONS, profile["qualifications"]):
            rows.append(_keyed(profile, QUALIFICATION=qualification, PCT_QUALIFICATION=f"{pct}%"))
    return pd.DataFrame(rows)


def build_tell(profiles: list[dict]) -> pd.DataFrame:
    rows = []
    for profile in profiles:
        if "no_tell" in profile["flags"]:
            continue
        for measure, value in zip(TELL_MEASURES, profile["tell"]):
            rows.append(
                {"SchYear": SCHOOL_YEAR, "StateSchId": profile["state_sch_id"], "Equity Measure": measure, "EQ Value": value}
            )
    return pd.DataFrame(rows)


def build_district_funding(seed: int, header: str, low: float, high: float) -> pd.DataFrame:
    rng = random.Random(f"{seed}-{header}")
    rows = [
        {"District": f"{district['dist_number']} {district['name']}", header: round(rng.uniform(low, high), 2)}
        for district in DISTRICT_TEMPLATES
    ]
    rows.append({"District": "State Totals:", header: round(sum(row[header] for row in rows), 2)})
    return pd.DataFrame(rows)


def build_proficiency(profiles: list[dict]) -> pd.DataFrame:
    rows = []
    for profile in profiles:
        level = profile["level"]
        if not level:
            continue
        for subject, key in (("MA", "prof_ma"), ("RD", "prof_rd"), ("SC", "prof_rd")):
            rows.append(
                _keyed(profile, LEVEL=level, SUBJECT=subject, DEMOGRAPHIC="TST", PROFICIENT_DISTINGUISHED=profile[key])
            )
            rows.append(
                _keyed(profile, LEVEL=level, SUBJECT=subject, DEMOGRAPHIC="MAL", PROFICIENT_DISTINGUISHED=profile[key] - 3)
            )
    return pd.DataFrame(rows)


def build_workbooks(seed: int) -> dict[str, pd.DataFrame]:
    """Workbook file name -> the data table it carries."""
    profiles = build_profiles(seed)
    return {
        "DISTRICT_SCHOOL_LIST.xlsx": build_roster(profiles),
        "ACCOUNTABILITY_PROFILE.xlsx": build_levels(profiles),
        "SAAR_ATTENDENCE_RATE.xlsx": build_attendance(profiles),
        "CHRONIC_ABSENTEEISM.xlsx": build_demographic_split(profiles, "chronic", "CHRONIC_ABSENTEE_CNT", "chronic"),
        "SAFE_SCHOOLS.xlsx": build_safe_schools(profiles),
        "ENGLISH_LEARNERS.xlsx": build_counts(profiles, "ALLELSTUDENTS_CNT", "ell"),
        "STUDENT_DEMOGRAPHIC_RACE_GENDER.xlsx": build_race_gender(profiles),
        "FREE_AND_REDUCED_LUNCH.xlsx": build_counts(profiles, "TOTAL_CNT", "frpl"),
        "GIFTED_AND_TALENTED.xlsx": build_demographic_split(profiles, "gifted", "GT_CNT", "gifted"),
        "HOMELESS.xlsx": build_counts(profiles, "TOTAL", "homeless"),
        "SPECIAL_EDUCATION.xlsx": build_demographic_split(profiles, "iep", "TOTALSTUDENTS", "iep"),
        "MIGRANT.xlsx": build_counts(profiles, "TOTAL", "migrant"),
        "STUDENT_TEACHER_RATIO.xlsx": build_ratio(profiles),
        "SCHOOL_EXPERIENCE.xlsx": build_counts(profiles, "AVGEXPERIENCEYEARS", "experience"),
        "NEW_TEACHER_COUNT.xlsx": build_new_teachers(profiles),
        "TEACHER_QUALIFICATIONS.xlsx": build_qualifications(profiles),
        "NATIONAL_BOARD_CERTIFICATION.xlsx": build_counts(profiles, "TOTAL", "national_board"),
        "TEACHER_TURNOVER.xlsx": build_counts(profiles, "TCH_TURNOVER_CNT", "turnover"),
        "EMERGENCY_AND_PROVISIONAL_CERTIFICATIONS.xlsx": build_counts(profiles, "TOTWAIVERS", "waivers"),
        "TELL_EQUITY.xlsx": build_tell(profiles),
        "FY2018 2019 SEEK Final Summary Per Pupil.xlsx": build_district_funding(seed, "Total Final SEEK", 4000, 6500),
        "FY2018 2019 SEEK Final Building Fund.xlsx": build_district_funding(seed, "Total Building Funds", 250000, 900000),
        "ACCOUNTABILITY_PROFICIENCY_LEVEL.xlsx": build_proficiency(profiles),
    }
