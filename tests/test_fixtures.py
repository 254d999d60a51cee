from nsw_job_spider.fixtures import FixtureStore
from nsw_job_spider.models import JobDetailsRaw, JobListing, PageLink


def _listing(job_id="REQ1"):
    return JobListing(id=job_id, title="Clerk", url=f"https://jobs.example.test/job/{job_id}",
                      job_reference=job_id)


def test_listings_round_trip(tmp_path):
    store = FixtureStore(tmp_path, replay=True, save=True)
    store.save_listings([_listing("REQ1"), _listing("REQ2")])

    loaded = store.load_listings()

    assert [listing.id for listing in loaded] == ["REQ1", "REQ2"]


def test_disabled_modes(tmp_path):
    FixtureStore(tmp_path, replay=False, save=False).save_listings([_listing()])
    assert not (tmp_path / "job_listings.json").exists()

    FixtureStore(tmp_path, replay=False, save=True).save_listings([_listing()])
    assert FixtureStore(tmp_path, replay=False).load_listings() is None
    assert FixtureStore(tmp_path, replay=True).load_listings() is not None


def test_missing_and_corrupt_files(tmp_path):
    store = FixtureStore(tmp_path, replay=True)
    assert store.load_listings() is None
    assert store.load_details("REQ1") is None

    (tmp_path / "job_listings.json").write_text("{not json", encoding="utf-8")
    assert store.load_listings() is None

    (tmp_path / "job_listings.json").write_text('{"id": "REQ1"}', encoding="utf-8")
    assert store.load_listings() is None


def test_details_saved_under_sanitized_id(tmp_path):
    store = FixtureStore(tmp_path, replay=True, save=True)
    listing = _listing("REQ/77 A")
    raw = JobDetailsRaw(**listing.model_dump(), job_type="Casual",
                        links=[PageLink(url="https://jobs.example.test/", text="Home")])

    store.save_details(listing, "<html></html>", raw)

    job_dir = tmp_path / "REQ_77_A"
    assert sorted(p.name for p in job_dir.iterdir()) == ["details.json", "listing.json", "raw.html"]
    loaded = store.load_details("REQ/77 A")
    assert loaded.job_type == "Casual"
    assert not hasattr(loaded, "links")
