"""Defines the districts and schools behind the synthetic report-card workbooks.

Flags mark the deliberate issues each school carries into the exports:

- ``no_level``: absent from the accountability profile (becomes PreK).
- ``suppressed_chronic``: chronic absence count published as ``*``.
- ``no_tell``: no TELL survey rows.
- ``no_quals``: no teacher qualification rows.
- ``blank_new_pct``: first-year teacher percentage left blank.
- ``zero_membership``: membership of 0, so every student rate is undefined.
"""

SCHOOL_YEAR = "20182019"

DISTRICT_TEMPLATES = [
    {"dist_number": "001", "name": "Adair County", "cntyno": "001", "coop": "GRREC"},
    {"dist_number": "005", "name": "Allen County", "cntyno": "003", "coop": "GRREC"},
    {"dist_number": "011", "name": "Bath County", "cntyno": "006", "coop": "KVEC"},
    {"dist_number": "017", "name": "Bourbon County", "cntyno": "009", "coop": "CKEC"},
]

SCHOOL_TEMPLATES = [
    {"dist": "001", "sch": "010", "name": "Adair County Elementary School", "level": "ES",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("K", "5")},
    {"dist": "001", "sch": "020", "name": "Adair County Middle School", "level": "MS",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("6", "8")},
    {"dist": "001", "sch": "030", "name": "Adair County High School", "level": "HS",
     "title1": "Not a Title I School", "grades": ("9", "12")},
    {"dist": "001", "sch": "040", "name": "Colonel William Casey Elementary", "level": "ES",
     "title1": "Title I Eligible - Targeted Assistance School", "grades": ("K", "5"),
     "flags": ("no_quals",)},
    {"dist": "001", "sch": "050", "name": "Adair Early Learning Center", "level": None,
     "title1": "Title I Eligible - No Program", "grades": ("P", "P"),
     "flags": ("no_level", "zero_membership")},
    {"dist": "005", "sch": "010", "name": "Allen County Primary Center", "level": "ES",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("K", "2")},
    {"dist": "005", "sch": "020", "name": "James E Bazzell Middle School", "level": "MS",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("6", "8")},
    {"dist": "005", "sch": "030", "name": "Allen County-Scottsville High School", "level": "HS",
     "title1": "Not a Title I School", "grades": ("9", "12")},
    {"dist": "005", "sch": "040", "name": "Allen County Intermediate Center", "level": "ES",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("3", "5"),
     "flags": ("blank_new_pct",)},
    {"dist": "011", "sch": "010", "name": "Crossroads Elementary School", "level": "ES",
     "title1": "Title I Status Pending Review", "grades": ("K", "5")},
    {"dist": "011", "sch": "020", "name": "Owingsville Elementary School", "level": "ES",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("K", "5"),
     "flags": ("suppressed_chronic",)},
    {"dist": "011", "sch": "030", "name": "Bath County Middle School", "level": "MS",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("6", "8")},
    {"dist": "011", "sch": "040", "name": "Bath County High School", "level": "HS",
     "title1": "Not a Title I School", "grades": ("9", "12")},
    {"dist": "011", "sch": "900", "name": "Bath County Day Treatment", "level": "HS",
     "title1": "Not a Title I School", "grades": ("6", "12"), "sch_type": "A5"},
    {"dist": "017", "sch": "010", "name": "Bourbon Central Elementary School", "level": "ES",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("K", "5")},
    {"dist": "017", "sch": "020", "name": "Cane Ridge Elementary School", "level": "ES",
     "title1": "Title I Eligible - Targeted Assistance School", "grades": ("K", "5")},
    {"dist": "017", "sch": "030", "name": "North Middletown Elementary School", "level": "ES",
     "title1": "Title I Eligible - Schoolwide School", "grades": ("K", "5"),
     "flags": ("no_tell",)},
]

TELL_MEASURES = (
    "Managing Student Conduct Composite",
    "Community Support & Involvement Composite",
    "School Leadership Composite",
    "Teacher Leadership Composite",
)

QUALIFICATIONS = ("Associate Degree", "Bachelors", "Masters", "Rank I", "Doctorate")

# filter column -> (kept value, distractor value) for the demographic splits
DEMOGRAPHIC_SPLITS = {
    "chronic": ("DEMO_ABBREV", "TST", "ECO"),
    "gifted": ("DEMO", "TST", "MAL"),
    "iep": ("DEMOABBREV", "TST", "FEM"),
}

# workbook -> sheet index holding the data, header rows above the table
WORKBOOK_LAYOUT = {
    "DISTRICT_SCHOOL_LIST.xlsx": {"sheet": 1},
    "ACCOUNTABILITY_PROFILE.xlsx": {"sheet": 1},
    "SAAR_ATTENDENCE_RATE.xlsx": {"sheet": 1},
    "CHRONIC_ABSENTEEISM.xlsx": {"sheet": 1},
    "SAFE_SCHOOLS.xlsx": {"sheet": 1},
    "ENGLISH_LEARNERS.xlsx": {"sheet": 1},
    "STUDENT_DEMOGRAPHIC_RACE_GENDER.xlsx": {"sheet": 1},
    "FREE_AND_REDUCED_LUNCH.xlsx": {"sheet": 1},
    "GIFTED_AND_TALENTED.xlsx": {"sheet": 1},
    "HOMELESS.xlsx": {"sheet": 1},
    "SPECIAL_EDUCATION.xlsx": {"sheet": 1},
    "MIGRANT.xlsx": {"sheet": 1},
    "STUDENT_TEACHER_RATIO.xlsx": {"sheet": 1},
    "SCHOOL_EXPERIENCE.xlsx": {"sheet": 1},
    "NEW_TEACHER_COUNT.xlsx": {"sheet": 1},
    "TEACHER_QUALIFICATIONS.xlsx": {"sheet": 1},
    "NATIONAL_BOARD_CERTIFICATION.xlsx": {"sheet": 1},
    "TEACHER_TURNOVER.xlsx": {"sheet": 1},
    "EMERGENCY_AND_PROVISIONAL_CERTIFICATIONS.xlsx": {"sheet": 0},
    "TELL_EQUITY.xlsx": {"sheet": 1},
    "FY2018 2019 SEEK Final Summary Per Pupil.xlsx": {
        "sheet": 0,
        "title": ("FY 2018-2019 SEEK Final Summary", "Per Pupil Amounts", "Kentucky Department of Education"),
    },
    "FY2018 2019 SEEK Final Building Fund.xlsx": {
        "sheet": 0,
        "title": ("FY 2018-2019 SEEK Final Building Fund", "District Totals", "Kentucky Department of Education"),
    },
    "ACCOUNTABILITY_PROFICIENCY_LEVEL.xlsx": {"sheet": 1},
}
