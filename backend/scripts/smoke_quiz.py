import sys
import requests

base = 'http://127.0.0.1:8000/api'
email = sys.argv[1] if len(sys.argv) > 1 else 'lead@college.edu'
event = sys.argv[2] if len(sys.argv) > 2 else 'InnovWEB'

try:
    r = requests.post(base + '/quiz/start', json={'email': email, 'event': event})
    print('START STATUS', r.status_code)
    print(r.text[:1000])
except requests.RequestException as e:
    print('START ERR', e)
    sys.exit(1)
if r.status_code != 200:
    sys.exit(1)

body = r.json()
# always pick the first option; good enough to exercise scoring
answers = [{'question_id': q['id'], 'selected_option': 0, 'time_spent': 5} for q in body['questions']]
for attempt in (1, 2):
    r = requests.post(base + '/quiz/submit', json={'session_id': body['session_id'], 'answers': answers})
    print(f'\nSUBMIT {attempt} STATUS', r.status_code)
    print(r.text[:1000])
