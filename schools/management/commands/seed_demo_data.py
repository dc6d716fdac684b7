import random
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from behavior.dates import get_today_key
from behavior.totals import compute_totals
from store.client import SERVER_TIMESTAMP, get_store
from store.exceptions import TrackerError
from store.validation import validate_doc_params

User = get_user_model()

STUDENT_NAMES = [
    'Emma Johnson', 'Liam Smith', 'Olivia Brown', 'Noah Davis', 'Ava Wilson',
    'Ethan Martinez', 'Sophia Anderson', 'Mason Taylor', 'Isabella Moore', 'Lucas Jackson',
]
GRADES = ['3rd', '4th', '5th']
TEACHER_IDS = ['teacher_001', 'teacher_002']

GOALS = [
    {'id': 'goal_1', 'label': 'On Task', 'kind': 'stepper'},
    {'id': 'goal_2', 'label': 'Following Directions', 'kind': 'stepper'},
    {'id': 'goal_3', 'label': 'Respectful', 'kind': 'checkbox'},
]

# Day codes of the two specials rotations
SPECIALS_DAY_CODES = {
    'AE': ['A', 'B', 'C', 'D', 'E'],
    'MF': ['M', 'T', 'W', 'TH', 'F'],
}


def build_schedule(specials_mode):
    schedule = []
    for code in SPECIALS_DAY_CODES[specials_mode]:
        schedule.append({'id': f"{code}1", 'label': code, 'am': True})
        schedule.append({'id': f"{code}2", 'label': code, 'am': False})
    return schedule


class Command(BaseCommand):
    help = "Seed demo data for a school: staff, students, behavior plans and past days with totals"

    def add_arguments(self, parser):
        parser.add_argument('--school-id', type=str, default='school_001', help='School to seed data for')
        parser.add_argument('--seed', type=int, default=1337, help='Random seed for reproducible data')
        parser.add_argument('--specials-mode', choices=sorted(SPECIALS_DAY_CODES), default='AE', help='Specials day rotation')
        parser.add_argument('--days', type=int, default=7, help='Number of past days to create')

    def handle(self, *args, **options):
        school_id = options.get('school_id')
        specials_mode = options.get('specials_mode')
        num_days = options.get('days')
        try:
            validate_doc_params(school_id)
        except TrackerError as e:
            raise CommandError(str(e))
        if num_days < 0:
            raise CommandError("--days must not be negative")

        rng = random.Random(options.get('seed'))
        store = get_store()
        batch = store.batch()
        schedule = build_schedule(specials_mode)

        batch.set(store.doc('schools', school_id), {
            'name': 'Demo School',
            'lastModified': SERVER_TIMESTAMP,
        }, merge=True)

        # Staff documents sync their claims onto these users
        for uid in TEACHER_IDS:
            user, created = User.objects.get_or_create(username=uid, defaults={'email': f"{uid}@example.com"})
            if created:
                user.set_unusable_password()
                user.save()
            batch.set(store.doc('schools', school_id, 'staff', uid), {
                'name': uid.replace('_', ' ').title(),
                'roles': ['teacher'],
                'schoolId': school_id,
            }, merge=True)
        self.stdout.write(self.style.SUCCESS(f"Staff: {len(TEACHER_IDS)}"))

        today = timezone.now()
        days_created = 0
        for i, name in enumerate(STUDENT_NAMES, start=1):
            student_id = f"demo_student_{i}"
            plan_id = f"demo_plan_{i}"

            batch.set(store.doc('schools', school_id, 'students', student_id), {
                'name': name,
                'grade': rng.choice(GRADES),
                'teacherId': rng.choice(TEACHER_IDS),
                'activePlanId': plan_id,
                'parentEmails': [f"parent{i}@example.com"],
                'parentPortalId': f"portal_{i}",
            })
            batch.set(store.doc('schools', school_id, 'plans', plan_id), {
                'studentId': student_id,
                'teacherId': rng.choice(TEACHER_IDS),
                'active': True,
                'planType': 'PercentageAMPM',
                'schedule': schedule,
                'goals': GOALS,
                'incentives': {
                    'thresholds': [
                        {'pct': 70, 'label': 'Bronze Star'},
                        {'pct': 85, 'label': 'Silver Star'},
                        {'pct': 95, 'label': 'Gold Star'},
                    ],
                },
                'customButtons': [
                    {'id': 'btn_1', 'label': 'Great Job!', 'colorHex': '#4CAF50'},
                    {'id': 'btn_2', 'label': 'Needs Redirect', 'colorHex': '#FF9800'},
                ],
                'accommodations': [],
            })

            for offset in range(num_days, 0, -1):
                matrix = {}
                for period in schedule:
                    matrix[period['id']] = {}
                    for goal in GOALS:
                        if goal['kind'] == 'stepper':
                            matrix[period['id']][goal['id']] = rng.randint(0, 2)
                        else:
                            matrix[period['id']][goal['id']] = rng.random() > 0.3

                day_key = get_today_key(today - timedelta(days=offset))
                batch.set(store.doc('schools', school_id, 'plans', plan_id, 'days', day_key), {
                    'matrix': matrix,
                    'totals': compute_totals(matrix, schedule, GOALS, 'PercentageAMPM'),
                    'comments': {'teacher': 'Great progress today!' if rng.random() > 0.5 else ''},
                    'incidents': [],
                })
                days_created += 1

        try:
            writes = batch.commit()
        except TrackerError as e:
            raise CommandError(f"Failed to seed demo data: {e}")

        self.stdout.write(self.style.SUCCESS(f"Students: {len(STUDENT_NAMES)}"))
        self.stdout.write(self.style.SUCCESS(f"Plans: {len(STUDENT_NAMES)}"))
        self.stdout.write(self.style.SUCCESS(f"Days: {days_created}"))
        self.stdout.write(self.style.SUCCESS(f"Demo data seeded for {school_id} ({writes} writes)"))
