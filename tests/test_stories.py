from datetime import datetime, timedelta

import pytest


STORY = {
    'title': 'From intern to studio lead',
    'content': 'Akosua joined the video production class in 2022 and now runs her own studio.',
    'excerpt': 'How one graduate built a studio.',
    'category': 'Graduates',
    'tags': ['video', 'alumni'],
    'is_published': True
}


@pytest.fixture
def make_story(client, admin):
    def _make(**fields):
        resp = client.post('/api/stories', headers=admin.headers, json=dict(STORY, **fields))
        assert resp.status_code == 201
        return resp.get_json()['data']

    return _make


def test_admin_creates_story(client, admin, make_story):
    story = make_story()
    assert story['published_at'] is not None
    assert story['tags'] == ['video', 'alumni']
    assert story['author_name'] == 'Kofi Admin'


def test_story_validation_and_permissions(client, admin, student):
    short = dict(STORY, content='Too short')
    assert client.post('/api/stories', headers=admin.headers, json=short).status_code == 400

    no_category = {k: v for k, v in STORY.items() if k != 'category'}
    assert client.post('/api/stories', headers=admin.headers, json=no_category).status_code == 400

    assert client.post('/api/stories', headers=student.headers, json=STORY).status_code == 403


def test_public_list_hides_drafts_and_scheduled(client, admin, make_story):
    make_story(title='Published')
    make_story(title='Draft', is_published=False)
    future = (datetime.utcnow() + timedelta(days=7)).isoformat()
    scheduled = make_story(title='Next week', scheduled_for=future)

    listed = client.get('/api/stories').get_json()['data']
    assert [s['title'] for s in listed['stories']] == ['Published']
    assert listed['pagination']['total'] == 1

    assert client.get(f"/api/stories/{scheduled['id']}").status_code == 404

    everything = client.get('/api/stories/admin/all', headers=admin.headers).get_json()['data']
    assert everything['pagination']['total'] == 3


def test_featured_first_and_filters(client, make_story):
    make_story(title='Regular', category='Audio')
    make_story(title='Spotlight', is_featured=True)

    titles = [s['title'] for s in client.get('/api/stories').get_json()['data']['stories']]
    assert titles == ['Spotlight', 'Regular']

    featured = client.get('/api/stories/featured').get_json()['data']
    assert [s['title'] for s in featured] == ['Spotlight']

    audio = client.get('/api/stories?category=Audio').get_json()['data']['stories']
    assert [s['title'] for s in audio] == ['Regular']

    search = client.get('/api/stories?search=spotlight').get_json()['data']['stories']
    assert [s['title'] for s in search] == ['Spotlight']


def test_reading_counts_views(client, make_story):
    story = make_story()
    client.get(f"/api/stories/{story['id']}")
    data = client.get(f"/api/stories/{story['id']}").get_json()['data']
    assert data['story']['view_count'] == 2
    assert data['comments'] == []
    assert data['liked'] is False


def test_comments_and_likes(client, student, make_story):
    story = make_story()
    url = f"/api/stories/{story['id']}"

    assert client.post(f"{url}/comments", json={'content': 'Inspiring'}).status_code == 401
    assert client.post(f"{url}/comments", headers=student.headers, json={'content': '  '}).status_code == 400

    resp = client.post(f"{url}/comments", headers=student.headers, json={'content': 'Inspiring'})
    assert resp.status_code == 201
    assert resp.get_json()['data']['author_name'] == 'Ama Mensah'

    comments = client.get(f"{url}/comments").get_json()['data']
    assert [c['content'] for c in comments['comments']] == ['Inspiring']

    liked = client.post(f"{url}/like", headers=student.headers).get_json()['data']
    assert liked == {'liked': True, 'like_count': 1}
    assert client.get(url, headers=student.headers).get_json()['data']['liked'] is True

    unliked = client.post(f"{url}/like", headers=student.headers).get_json()['data']
    assert unliked == {'liked': False, 'like_count': 0}


def test_update_and_delete_story(client, admin, make_story):
    story = make_story(is_published=False)
    assert client.get(f"/api/stories/{story['id']}").status_code == 404

    updated = client.put(f"/api/stories/{story['id']}", headers=admin.headers, json={'is_published': True})
    assert updated.get_json()['data']['published_at'] is not None
    assert client.get(f"/api/stories/{story['id']}").status_code == 200

    assert client.delete(f"/api/stories/{story['id']}", headers=admin.headers).status_code == 200
    assert client.get(f"/api/stories/{story['id']}").status_code == 404
